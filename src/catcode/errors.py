"""Exception types raised by catcode.

Every error is raised before any output dataset is built, so callers never
receive a partially encoded dataset.
"""

from __future__ import annotations


class CatcodeError(Exception):
    """Base class for all catcode errors."""


class InvalidRangeError(CatcodeError, ValueError):
    """A column range expression is malformed or points outside the dataset."""


class UnsupportedTargetError(CatcodeError, TypeError):
    """The target column is neither numeric nor a binary nominal column."""


class SchemaMismatchError(CatcodeError, ValueError):
    """A dataset passed after fitting does not match the fitted schema."""


class NotFittedError(CatcodeError, ValueError, AttributeError):
    """The code table was requested before the pipeline was fitted.

    Inherits from ValueError and AttributeError to match the scikit-learn
    convention, so it can be caught by either.
    """
