import unittest


try:
  loader = unittest.TestLoader()
  suite = loader.discover(start_dir="tests", top_level_dir=".")
  # suite = unittest.TestLoader().loadTestsFromName("tests.test_fetch_task.TestFetchTask.test_cancel_between_chunks")
  runner = unittest.TextTestRunner()
  result = runner.run(suite)
  if not result.wasSuccessful():
    exit(1)

except Exception as e:
  print(e)
  exit(1)
