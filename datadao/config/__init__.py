from .core import Settings, load_settings
from .curation_params import CurationParams, get_curation_params

__all__ = ["CurationParams", "Settings", "get_curation_params", "load_settings"]
