# Database utilities package
from .engine import get_engine, dispose_engines
