"""Armory-Engine: military asset tracking with audited transfer and purchase workflows."""

from armory_engine.common.results import Err, Ok
from armory_engine.common.security import Actor
from armory_engine.engine import ArmoryEngine

__all__ = [
    "ArmoryEngine",
    "Actor",
    "Ok",
    "Err",
]
__version__ = "0.1.0"
