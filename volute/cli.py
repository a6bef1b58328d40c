# volute/cli.py
# CLI for running a Volute program file; prints the final text and optionally a receipt.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .debug import LoggingObserver
from .errors import LocationError
from .program import Location
from .receipt import make_base_receipt, validate_receipt, write_receipt
from .runner import DEFAULT_MAX_STEPS, RunOptions, Session, StopReason

LOG = logging.getLogger("volute.cli")

EXIT_CODES = {
    StopReason.HALTED: 0,
    StopReason.WAITING: 0,
    StopReason.STOPPED: 0,
    StopReason.ERROR: 1,
    StopReason.TIMEOUT: 2,
}


def parse_click(value: str) -> Location:
    try:
        location = Location.decode(value)
    except LocationError as exc:
        raise argparse.ArgumentTypeError(f"--click expects ROW:COL (1-indexed), got {value!r}") from exc
    if location.row < 0 or location.col < 0:
        raise argparse.ArgumentTypeError(f"--click expects positive ROW:COL, got {value!r}")
    return location


def _load_text(program: str) -> str:
    if program == "-":
        return sys.stdin.read()
    return Path(program).read_text(encoding="utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="volute",
        description="Run a Volute program (a post whose text is its own memory).",
    )
    p.add_argument("program", help="Path to the program text, or - for stdin.")
    p.add_argument("--click", dest="clicks", action="append", type=parse_click, default=[],
                   metavar="ROW:COL", help="Click at ROW:COL after the program settles (repeatable).")
    p.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                   help=f"Step budget per settle (default: {DEFAULT_MAX_STEPS}).")
    p.add_argument("--immediate", action="store_true", help="Mirror every edit to the text buffer as it happens.")
    p.add_argument("--trace", action="store_true", help="Log every thread state (DEBUG level).")
    p.add_argument("--no-steps", action="store_true", help="Leave the per-step trace out of the receipt.")
    p.add_argument("--print-receipt", action="store_true", help="Print the receipt JSON to stdout.")
    p.add_argument("--receipt-out", metavar="PATH", help="Write the receipt JSON to PATH.")
    p.add_argument("--result-only", action="store_true", help="Print only the final program text.")
    p.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.trace else getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = None if args.program == "-" else args.program
    if path is not None and not Path(path).is_file():
        p.error(f"program not found: {path}")

    text = ""
    try:
        text = _load_text(args.program)
        options = RunOptions(
            immediate_updates=args.immediate,
            max_steps=args.max_steps,
            trace=not args.no_steps,
        )
        observer = LoggingObserver() if args.trace else None
        session = Session(text, options, observer, path=path).start()
        status = session.run()
        for location in args.clicks:
            if status in (StopReason.ERROR, StopReason.TIMEOUT):
                break
            session.click(location)
            status = session.run()

        receipt = session.receipt()
        validate_receipt(receipt)
        final_text = session.view.text
        if args.result_only:
            print(final_text)
        else:
            if not args.print_receipt:
                print(final_text)
            if session.error is not None:
                print(f"volute: {session.error}", file=sys.stderr)
            elif status is StopReason.TIMEOUT:
                print(f"volute: step budget of {args.max_steps} exhausted", file=sys.stderr)
        write_receipt(args.receipt_out, receipt, args.print_receipt)
        if args.receipt_out and not args.result_only:
            LOG.info("wrote receipt: %s", args.receipt_out)
        return EXIT_CODES[status]

    except Exception as e:
        LOG.error("run failed: %s", e)
        err = make_base_receipt(text, path)
        err["status"] = "error"
        err["error"] = {"type": type(e).__name__, "message": str(e), "thread": None, "location": None}
        err["logs"].append({"level": "error", "event": "fatal", "message": str(e)})
        write_receipt(args.receipt_out, err, args.print_receipt)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
