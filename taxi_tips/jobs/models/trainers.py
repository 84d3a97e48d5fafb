"""
Regression model trainers for tip amount prediction.

Each trainer is a strategy that contributes its estimator and its summary
format; the preprocessing pipeline (categorical encoding, vector assembly) is
shared. Trainers keep no state between fits and only read the training
DataFrame, so their order does not affect results.

Models:
    - ElasticNetTrainer: linear regression, L1/L2 mix 0.5, regularization 0.01
    - RandomForestTrainer: 50 trees, depth 5, 500 bins
    - GradientBoostedTreesTrainer: depth 3, 32 bins, squared loss
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from pyspark.ml import Pipeline, PipelineModel
from pyspark.ml.feature import OneHotEncoder, StringIndexer, VectorAssembler
from pyspark.ml.regression import (
    GBTRegressor,
    LinearRegression,
    RandomForestRegressor,
)
from pyspark.sql import DataFrame
from pyspark.sql.types import StructField

from taxi_tips.jobs.features.feature_spec import FeatureSpec

logger = logging.getLogger(__name__)

FEATURES_COL = "features"
PREDICTION_COL = "prediction"


@dataclass(frozen=True)
class ElasticNetParams:
    elastic_net_param: float = 0.5
    reg_param: float = 0.01


@dataclass(frozen=True)
class RandomForestParams:
    max_bins: int = 500
    max_depth: int = 5
    num_trees: int = 50


@dataclass(frozen=True)
class GradientBoostedTreesParams:
    max_bins: int = 32
    max_depth: int = 3
    loss_type: str = "squared"


@dataclass(frozen=True)
class FittedModel:
    """A fitted preprocessing + estimator pipeline and its printable summary."""

    name: str
    pipeline_model: PipelineModel
    feature_spec: FeatureSpec
    feature_names: List[str]
    summary: str

    @property
    def estimator_model(self):
        return self.pipeline_model.stages[-1]

    def predict(self, df: DataFrame) -> DataFrame:
        return self.pipeline_model.transform(df)


def feature_names_from_schema(field: StructField) -> List[str]:
    """
    Read the assembled vector's slot names from ML attribute metadata.

    Slots without a recorded name are reported as f<index>.
    """
    ml_attr = field.metadata.get("ml_attr", {})
    slots: Dict[int, str] = {}
    for group in ml_attr.get("attrs", {}).values():
        for attr in group:
            slots[attr["idx"]] = attr.get("name", f"f{attr['idx']}")
    size = ml_attr.get("num_attrs", len(slots))
    return [slots.get(i, f"f{i}") for i in range(size)]


def format_weights(names: Sequence[str], values: Sequence[float]) -> List[str]:
    width = max((len(n) for n in names), default=0)
    return [f"  {name.ljust(width)}  {value: .6f}" for name, value in zip(names, values)]


class ModelTrainer(ABC):
    """
    Strategy base class: one subclass per regression model type.

    Example:
        >>> trainer = ElasticNetTrainer()
        >>> fitted = trainer.fit(training_df, FeatureSpec.tip_model_default(), seed=1234)
        >>> print(fitted.summary)
    """

    name: str = ""

    @abstractmethod
    def build_estimator(self, label_col: str, seed: int):
        """Return the unfitted pyspark.ml estimator."""
        pass

    @abstractmethod
    def describe(self, model, feature_names: List[str]) -> str:
        """Return a printable summary of the fitted estimator."""
        pass

    def build_pipeline(self, df: DataFrame, spec: FeatureSpec, seed: int) -> Pipeline:
        dtypes = dict(df.dtypes)
        stages = []
        encoded_inputs = []
        encoded_outputs = []

        for column in spec.categorical:
            source = column
            if dtypes[column] == "string":
                source = f"{column}_idx"
                stages.append(
                    StringIndexer(inputCol=column, outputCol=source, handleInvalid="keep")
                )
            encoded_inputs.append(source)
            encoded_outputs.append(f"{column}_vec")

        if encoded_inputs:
            stages.append(
                OneHotEncoder(
                    inputCols=encoded_inputs,
                    outputCols=encoded_outputs,
                    handleInvalid="keep",
                )
            )

        stages.append(
            VectorAssembler(
                inputCols=spec.numeric + encoded_outputs,
                outputCol=FEATURES_COL,
            )
        )
        stages.append(self.build_estimator(spec.label, seed))
        return Pipeline(stages=stages)

    def fit(self, df: DataFrame, spec: FeatureSpec, seed: int = 1234) -> FittedModel:
        """
        Fit the model on the training subset.

        :params df: Training DataFrame
        :params spec: Label and feature columns
        :params seed: Seed for randomized estimators
        :returns: FittedModel with summary text
        :raises FeatureSpecError: If a spec column is missing from df
        """
        spec.validate(df.columns)
        training = df.dropna(subset=spec.column_names)

        logger.info(f"Fitting {self.name}: {spec.label} ~ {' + '.join(spec.features)}")
        pipeline_model = self.build_pipeline(training, spec, seed).fit(training)

        assembled = pipeline_model.transform(training).schema[FEATURES_COL]
        feature_names = feature_names_from_schema(assembled)
        summary = self.describe(pipeline_model.stages[-1], feature_names)
        logger.info(f"Fitted {self.name}\n{summary}")

        return FittedModel(
            name=self.name,
            pipeline_model=pipeline_model,
            feature_spec=spec,
            feature_names=feature_names,
            summary=summary,
        )


class ElasticNetTrainer(ModelTrainer):
    name = "elastic_net"

    def __init__(self, params: Optional[ElasticNetParams] = None):
        self.params = params or ElasticNetParams()

    def build_estimator(self, label_col: str, seed: int):
        return LinearRegression(
            featuresCol=FEATURES_COL,
            labelCol=label_col,
            predictionCol=PREDICTION_COL,
            elasticNetParam=self.params.elastic_net_param,
            regParam=self.params.reg_param,
        )

    def describe(self, model, feature_names: List[str]) -> str:
        lines = [
            f"Elastic net (alpha={self.params.elastic_net_param}, lambda={self.params.reg_param})",
            f"  intercept  {model.intercept: .6f}",
            "Coefficients:",
        ]
        lines.extend(format_weights(feature_names, model.coefficients.toArray()))
        if model.hasSummary:
            lines.append(f"Training R2: {model.summary.r2:.4f}")
            lines.append(f"Training RMSE: {model.summary.rootMeanSquaredError:.4f}")
        return "\n".join(lines)


class RandomForestTrainer(ModelTrainer):
    name = "random_forest"

    def __init__(self, params: Optional[RandomForestParams] = None):
        self.params = params or RandomForestParams()

    def build_estimator(self, label_col: str, seed: int):
        return RandomForestRegressor(
            featuresCol=FEATURES_COL,
            labelCol=label_col,
            predictionCol=PREDICTION_COL,
            maxBins=self.params.max_bins,
            maxDepth=self.params.max_depth,
            numTrees=self.params.num_trees,
            seed=seed,
        )

    def describe(self, model, feature_names: List[str]) -> str:
        lines = [
            f"Random forest (trees={len(model.trees)}, max_depth={self.params.max_depth}, "
            f"max_bins={self.params.max_bins}, nodes={model.totalNumNodes})",
            "Feature importances:",
        ]
        lines.extend(format_weights(feature_names, model.featureImportances.toArray()))
        return "\n".join(lines)


class GradientBoostedTreesTrainer(ModelTrainer):
    name = "gradient_boosted_trees"

    def __init__(self, params: Optional[GradientBoostedTreesParams] = None):
        self.params = params or GradientBoostedTreesParams()

    def build_estimator(self, label_col: str, seed: int):
        return GBTRegressor(
            featuresCol=FEATURES_COL,
            labelCol=label_col,
            predictionCol=PREDICTION_COL,
            maxBins=self.params.max_bins,
            maxDepth=self.params.max_depth,
            lossType=self.params.loss_type,
            seed=seed,
        )

    def describe(self, model, feature_names: List[str]) -> str:
        lines = [
            f"Gradient boosted trees (trees={len(model.trees)}, max_depth={self.params.max_depth}, "
            f"max_bins={self.params.max_bins}, loss={self.params.loss_type})",
            "Feature importances:",
        ]
        lines.extend(format_weights(feature_names, model.featureImportances.toArray()))
        lines.append(f"Tree weights: {list(model.treeWeights)}")
        lines.append(model.toDebugString)
        return "\n".join(lines)


def default_trainers() -> List[ModelTrainer]:
    return [ElasticNetTrainer(), RandomForestTrainer(), GradientBoostedTreesTrainer()]
