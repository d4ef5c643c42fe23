from typing import TypeVar


T = TypeVar("T")

# removes by identity: file handles compare by identity anyway, but other
# wrappers may not
def list_safe_remove(lst: list[T], item: T) -> bool:
  index = -1
  for i, elem in enumerate(lst):
    if elem is item:
      index = i
      break
  if index >= 0:
    lst.pop(index)
    return True
  return False
