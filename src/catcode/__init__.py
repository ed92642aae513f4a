from .errors import (
    CatcodeError,
    InvalidRangeError,
    UnsupportedTargetError,
    SchemaMismatchError,
    NotFittedError,
)
from .dataset import (
    ColumnKind,
    ColumnDescriptor,
    Dataset,
)
from .selection import (
    AttributeSelection,
    parse_range,
    resolve,
    validate_range,
)
from .codetable import CodeTable
from .encoders import (
    CategoryEncoder,
    MeanEncoder,
    FrequencyEncoder,
    make_encoder,
)
from .pipeline import EncodingPipeline, FitState
from .config import EncodingConfig
from .logging import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    # Errors
    "CatcodeError",
    "InvalidRangeError",
    "UnsupportedTargetError",
    "SchemaMismatchError",
    "NotFittedError",
    # Data model
    "ColumnKind",
    "ColumnDescriptor",
    "Dataset",
    # Selection
    "AttributeSelection",
    "parse_range",
    "resolve",
    "validate_range",
    # Encoding
    "CodeTable",
    "CategoryEncoder",
    "MeanEncoder",
    "FrequencyEncoder",
    "make_encoder",
    "EncodingPipeline",
    "FitState",
    # Configuration
    "EncodingConfig",
    "get_logger",
    "setup_logging",
]
