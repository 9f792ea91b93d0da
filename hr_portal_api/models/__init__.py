# hr_portal_api/models/__init__.py
import importlib
import pkgutil


def load_all():
    """Import every model module so its table lands in db.metadata. Returns the module names."""
    names = []
    for mod in pkgutil.iter_modules(__path__):
        if mod.ispkg:
            continue
        importlib.import_module(f"{__name__}.{mod.name}")
        names.append(mod.name)
    return sorted(names)
