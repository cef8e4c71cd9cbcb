from . import saves, solar_systems, stars

__all__ = [
    "saves",
    "solar_systems",
    "stars",
]
