# tests/conftest.py
# Ensure the project root (the folder that contains 'volute' and 'tests') is on sys.path
# so that `from volute...` imports work during pytest collection without an install.

import sys
import pathlib

ROOT = pathlib.Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)

if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

# Sanity check: make sure 'volute' is importable and looks like a package
try:
    import volute  # noqa: F401
except Exception as e:
    has_pkg = (ROOT / "volute" / "__init__.py").is_file()
    raise RuntimeError(
        f"Failed to import 'volute' from {ROOT_STR}. "
        f"volute/__init__.py exists: {has_pkg}"
    ) from e
