"""
Regression Models

Trainers for the elastic net, random forest and gradient-boosted tree models.
"""

from .trainers import (
    ElasticNetTrainer,
    FittedModel,
    GradientBoostedTreesTrainer,
    ModelTrainer,
    RandomForestTrainer,
    default_trainers,
)

__all__ = [
    "ElasticNetTrainer",
    "FittedModel",
    "GradientBoostedTreesTrainer",
    "ModelTrainer",
    "RandomForestTrainer",
    "default_trainers",
]
