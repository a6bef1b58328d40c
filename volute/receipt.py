# volute/receipt.py
# Run receipts: a JSON record of what a run did, checked against a local schema.

from __future__ import annotations
import datetime as _dt
import hashlib
import json
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import Draft202012Validator

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "volute-receipt.schema.json"


def _now_utc_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def source_hash(text: str) -> str:
    return "sha256:" + hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def make_base_receipt(source: str, path: Optional[str] = None) -> Dict[str, Any]:
    program: Dict[str, Any] = {"hash": source_hash(source), "entryPoint": None, "lines": 0}
    if path:
        program["path"] = str(path)
    return {
        "engine": "volute",
        "program": program,
        "run": {"timestamp": _now_utc_iso(), "uuid": str(uuid.uuid4())},
        "status": "running",
        "stepCount": 0,
        "steps": [],
        "threads": [],
        "clickHandlers": [],
        "clicks": [],
        "logs": [],
        "text": source or "",
    }


@lru_cache(maxsize=1)
def load_schema() -> Dict[str, Any]:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def validate_receipt(receipt: Dict[str, Any]) -> None:
    """Raise jsonschema.ValidationError if the receipt does not match the schema."""
    Draft202012Validator(load_schema()).validate(receipt)


def write_receipt(path: Optional[str], receipt: Dict[str, Any], print_receipt: bool = False) -> None:
    dump = json.dumps(receipt, indent=2, sort_keys=True, ensure_ascii=False)
    if print_receipt:
        print(dump)
    if path:
        Path(path).write_text(dump + "\n", encoding="utf-8")
