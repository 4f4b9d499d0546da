"""Inference engines and the gateway that fronts them."""

from .engines import Availability, EngineSet
from .gateway import CompletionMode, ModelGateway
from .provider import build_engines

__all__ = ["Availability", "CompletionMode", "EngineSet", "ModelGateway", "build_engines"]
