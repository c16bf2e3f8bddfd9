from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

DataType = Literal[
    "mentor_profile",
    "mentee_profile",
    "preference",
    "interaction",
    "feedback",
]


# ── Anonymization ────────────────────────────────────────────────────────────

class AnonymizationConfig(BaseModel):
    anonymization_level: Optional[str] = None
    k_anonymity: Optional[int] = Field(None, ge=1)
    l_diversity: Optional[int] = Field(None, ge=1)
    t_closeness: Optional[float] = Field(None, gt=0.0, le=1.0)
    generalization: Optional[dict[str, Any]] = None      # {"fields": {name: {"granularity": n}}}
    suppression: Optional[dict[str, Any]] = None         # {"fields": [name, ...]}
    microaggregation: Optional[dict[str, Any]] = None    # {"fields": {name: {"aggregation_size": n}}}
    noise_addition: Optional[dict[str, Any]] = None      # {"fields": {name: {"type": "gaussian", "magnitude": m}}}
    pseudonymization: Optional[dict[str, Any]] = None    # {"fields": [name, ...]}
    data_retention_days: Optional[int] = Field(None, ge=0)
    consent_given: bool = False
    data_categories: list[str] = []


class PrivacyMetrics(BaseModel):
    k_anonymity_level: float = 0.0
    l_diversity_level: float = 0.0
    t_closeness_level: float = 0.0
    information_loss: float = 0.0
    privacy_gain: float = 0.0
    anonymization_ratio: float = 0.0
    data_retention_compliance: bool = False
    consent_compliance: bool = False


class DataCollectionRecord(BaseModel):
    id: str
    data_type: DataType
    raw_data: Optional[dict[str, Any]] = None
    anonymized_data: Optional[dict[str, Any]] = None
    status: str = "pending"
    error_message: Optional[str] = None
    privacy_metadata: Optional[dict[str, Any]] = None
    processing_metadata: Optional[dict[str, Any]] = None


# ── Preprocessing ────────────────────────────────────────────────────────────

class OutlierDetectionConfig(BaseModel):
    enabled: bool = True
    method: Literal["iqr", "zscore", "isolation_forest"] = "iqr"
    threshold: float = Field(1.5, gt=0.0)


class FeatureEngineeringConfig(BaseModel):
    enabled: bool = True
    features: list[str] = []
    transformations: dict[str, str] = {}


class NormalizationConfig(BaseModel):
    enabled: bool = True
    method: Literal["minmax", "zscore", "robust"] = "minmax"
    fields: list[str] = []


class EncodingConfig(BaseModel):
    enabled: bool = True
    method: Literal["onehot", "label", "target"] = "label"
    categorical_fields: list[str] = []


class PreprocessingConfig(BaseModel):
    outlier_detection: OutlierDetectionConfig
    feature_engineering: FeatureEngineeringConfig
    normalization: NormalizationConfig
    encoding: EncodingConfig


class DataQualityMetrics(BaseModel):
    completeness: float
    accuracy: float
    consistency: float
    timeliness: float
    validity: float
    uniqueness: float
    overall_score: float
