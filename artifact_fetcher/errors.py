class InterruptionError(Exception):
  def __init__(self) -> None:
    super().__init__("Interrupted")

class FetchError(Exception):
  def __init__(self, message: str, cause_error: Exception) -> None:
    super().__init__(f"{message}: {cause_error}")
    self.cause_error: Exception = cause_error
    self.__cause__ = cause_error

# permission denied, invalid path
class DestinationOpenError(FetchError):
  pass

# resolution, connection, HTTP status
class SourceOpenError(FetchError):
  pass

# read or write failed mid-transfer
class TransferError(FetchError):
  pass

# truncate, delete or close failed. never changes the outcome
class CleanupError(FetchError):
  pass
