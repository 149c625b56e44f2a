import difflib
import logging
from typing import List

LOG_LEVEL_IO = 5
logging.addLevelName(LOG_LEVEL_IO, "IO")


def _hex_bytes(data: str) -> List[str]:
  return [data[i : i + 2] for i in range(0, len(data), 2)]


def align_sequences(expected: str, actual: str):
  """Print two hex strings byte by byte, aligned, with the differing bytes marked.

  Convenient for spotting which field of a written message differs from the capture.
  """

  a, b = _hex_bytes(expected), _hex_bytes(actual)
  top, bottom, markers = [], [], []
  for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(a=a, b=b, autojunk=False).get_opcodes():
    left, right = a[i1:i2], b[j1:j2]
    width = max(len(left), len(right))
    left += ["--"] * (width - len(left))
    right += ["--"] * (width - len(right))
    top.extend(left)
    bottom.extend(right)
    markers.extend(["  " if tag == "equal" else "^^"] * width)

  print("expected:", " ".join(top))
  print("actual:  ", " ".join(bottom))
  print("         ", " ".join(markers))
