"""Exit codes for every CLI command.

Code  Meaning
----  -------
  0   Success: no ERROR-severity issues found
  1   Violation: the analysis found at least one ERROR issue
  2   Error: usage error, missing project root, invalid configuration
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    VIOLATION = 1
    ERROR = 2
