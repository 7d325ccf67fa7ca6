"""Built-in architecture catalog."""
from ..config import settings
from .loader import Catalog, load_catalog, load_extra_scenarios

_default: Catalog | None = None


def default_catalog() -> Catalog:
    """The built-in catalog plus extra scenario files, loaded once."""
    global _default
    if _default is None:
        catalog = load_catalog(settings.catalog_file)
        load_extra_scenarios(catalog, settings.scenarios_dir)
        _default = catalog
    return _default
