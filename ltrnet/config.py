"""
ltrnet/config.py - Training configuration

Configurations are JSON documents in this shape:

    {
      "algorithm": "sortnet",
      "numIterations": 100,
      "batchSize": 0,
      "params": {
        "learningRate": 0.01,
        "optimizer": "adam",
        "weightInit": "xavier",
        "regularization": {"regularizer": "L2", "rate": 0.01},
        "layers": [{"num": 5, "activator": "sigmoid"}]
      },
      "evaluation": {"evaluator": "NDCG", "params": {"k": 10}},
      "model": {"format": "json", "file": "model/sortnet-model.json"},
      "report": {"format": "csv", "file": "report/sortnet-report.csv"},
      "dataSet": {"training": "...", "validation": "...", "test": "..."}
    }

Every field has a default.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .activation import get_activation
from .exceptions import ConfigurationError
from .network import WEIGHT_INITS
from .optimizer import get_optimizer
from .regularization import get_regularization

DEFAULT_MODEL_FILE = 'model/model.json'
DEFAULT_NDCG_K = 10


class _Section(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)


class LayerConfig(_Section):
    num: int = Field(gt=0)
    activator: str = 'sigmoid'

    @field_validator('activator')
    @classmethod
    def _known_activator(cls, v):
        try:
            get_activation(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v


class RegularizationConfig(_Section):
    regularizer: Optional[str] = None
    rate: float = Field(default=0.0, ge=0.0)

    @field_validator('regularizer')
    @classmethod
    def _known_regularizer(cls, v):
        try:
            get_regularization(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v


class ParamsConfig(_Section):
    learning_rate: float = Field(default=0.01, gt=0.0, alias='learningRate')
    optimizer: str = 'sgd'
    weight_init: str = Field(default='xavier', alias='weightInit')
    regularization: RegularizationConfig = RegularizationConfig()
    layers: List[LayerConfig] = Field(default_factory=lambda: [LayerConfig(num=10)])

    @field_validator('optimizer')
    @classmethod
    def _known_optimizer(cls, v):
        try:
            get_optimizer(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v.lower()

    @field_validator('weight_init')
    @classmethod
    def _known_weight_init(cls, v):
        if v.lower() not in WEIGHT_INITS:
            raise ValueError(f"Unknown weight initialization {v!r}. Available: {', '.join(WEIGHT_INITS)}")
        return v.lower()


class EvaluationConfig(_Section):
    evaluator: str = 'NDCG'
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('evaluator')
    @classmethod
    def _ndcg_only(cls, v):
        if v.upper() != 'NDCG':
            raise ValueError(f"Unsupported evaluator {v!r}; only NDCG is available")
        return v


class ModelConfig(_Section):
    format: str = 'json'
    file: Optional[str] = None

    @field_validator('format')
    @classmethod
    def _json_only(cls, v):
        if v.lower() != 'json':
            raise ValueError(f"Unsupported model format {v!r}; only json is available")
        return v.lower()


class ReportConfig(_Section):
    format: str = 'csv'
    file: Optional[str] = None
    plot: Optional[str] = None

    @field_validator('format')
    @classmethod
    def _csv_only(cls, v):
        if v.lower() != 'csv':
            raise ValueError(f"Unsupported report format {v!r}; only csv is available")
        return v.lower()


class DataSetConfig(_Section):
    training: Optional[str] = None
    validation: Optional[str] = None
    test: Optional[str] = None


class TrainerConfig(_Section):
    algorithm: str = 'sortnet'
    num_iterations: int = Field(default=100, ge=0, alias='numIterations')
    batch_size: int = Field(default=0, ge=0, alias='batchSize')
    params: ParamsConfig = ParamsConfig()
    evaluation: EvaluationConfig = EvaluationConfig()
    model: ModelConfig = ModelConfig()
    report: ReportConfig = ReportConfig()
    data_set: DataSetConfig = Field(default=DataSetConfig(), alias='dataSet')

    @field_validator('algorithm')
    @classmethod
    def _lower(cls, v):
        return v.strip().lower()

    @model_validator(mode='after')
    def _check_k(self):
        k = self.evaluation.params.get('k', DEFAULT_NDCG_K)
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise ValueError(f"evaluation.params.k must be a positive integer, got {k!r}")
        return self

    @property
    def learning_rate(self) -> float:
        return self.params.learning_rate

    @property
    def regularization(self) -> Optional[str]:
        return self.params.regularization.regularizer

    @property
    def regularization_rate(self) -> float:
        return self.params.regularization.rate

    @property
    def layers(self) -> List[Tuple[int, str]]:
        return [(layer.num, layer.activator) for layer in self.params.layers]

    @property
    def ndcg_k(self) -> int:
        return self.evaluation.params.get('k', DEFAULT_NDCG_K)

    @property
    def model_file(self) -> str:
        return self.model.file or DEFAULT_MODEL_FILE


def load_config(source: Union[str, Path, Dict[str, Any], Any, None] = None,
                **overrides) -> TrainerConfig:
    """
    Build a validated TrainerConfig

    Args:
        source: Path to a JSON file, JSON text, a dict, a readable file
            object, or None for all defaults
        overrides: Top-level fields (snake_case or camelCase) replacing the
            values from `source`

    Raises:
        ConfigurationError: The source cannot be read or fails validation
    """
    try:
        if source is None:
            data = {}
        elif isinstance(source, dict):
            data = dict(source)
        elif hasattr(source, 'read'):
            data = json.load(source)
        elif isinstance(source, Path) or not str(source).lstrip().startswith('{'):
            with open(source, 'r') as f:
                data = json.load(f)
        else:
            data = json.loads(source)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read configuration: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be an object, got {type(data).__name__}")
    for name, value in overrides.items():
        field = TrainerConfig.model_fields.get(name)
        if field is not None and field.alias:
            data.pop(field.alias, None)
        data[name] = value

    try:
        config = TrainerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration:\n{e}") from e

    return config
