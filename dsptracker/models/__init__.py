from .database import Base, SpectralClass, Save, SolarSystem, Star

__all__ = [
    "Base",
    "SpectralClass",
    "Save",
    "SolarSystem",
    "Star",
]
