from .mock_impl import MockBackend
from .pyomo_impl import PyomoBackend

__all__ = ["MockBackend", "PyomoBackend"]
