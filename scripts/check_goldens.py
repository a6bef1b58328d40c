from __future__ import annotations
import json, sys
from pathlib import Path

# Ensure project root (which contains `volute/`) is on sys.path
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def run_program(path: Path, clicks):
    from volute.program import Location
    from volute.runner import run_volute_text
    text = path.read_text(encoding="utf-8")
    return run_volute_text(text, clicks=[Location.decode(c) for c in clicks], path=str(path))


def check_program(path: Path) -> int:
    golden_path = Path(str(path) + ".json")
    if not golden_path.exists():
        print(f"[ERROR] Missing golden: {golden_path}. Export via: python -m volute {path} --result-only")
        return 1
    golden = json.loads(golden_path.read_text(encoding="utf-8"))
    text, receipt = run_program(path, golden.get("clicks") or [])
    if receipt["status"] != golden.get("status"):
        print(f"[FAIL] {path.name}: status {receipt['status']!r}, golden says {golden.get('status')!r}.")
        if receipt.get("error"):
            print(f"       error: {receipt['error']['message']}")
        return 2
    if text != golden.get("text"):
        print(f"[FAIL] {path.name}: final text differs from golden.")
        print("       expected: " + json.dumps(golden.get("text"), ensure_ascii=False))
        print("       actual:   " + json.dumps(text, ensure_ascii=False))
        return 3
    print(f"[OK] {path.name} matches golden ({receipt['stepCount']} steps).")
    return 0


def main():
    base = ROOT / "programs"
    if not base.exists():
        print("[ERROR] programs/ not found."); sys.exit(1)
    rc = 0
    for p in sorted(base.glob("*.volute")):
        rc |= check_program(p)
    sys.exit(1 if rc else 0)

if __name__ == "__main__":
    main()
