# nominal_roll_api/models/__init__.py
import importlib
import pkgutil
import pathlib


def load_all():
    """Import every model module so its tables land on ``db.metadata``.

    Alembic autogenerate and ``db.create_all()`` both read the metadata, so
    a model module that nobody imported yet would silently be left out.
    """
    pkg_path = pathlib.Path(__file__).parent
    for mod in pkgutil.iter_modules([str(pkg_path)]):
        if mod.name.startswith("_"):
            continue
        importlib.import_module(f"{__name__}.{mod.name}")
