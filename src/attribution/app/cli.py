from __future__ import annotations

import argparse
import sys

from attribution.app.runner import clear, run


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="attribution-sim")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("replay", help="Replay a launch/track/link scenario")
    p_run.add_argument("--config", default="config/scenario.yaml")

    p_clear = sub.add_parser("clear", help="Reset the persisted first-session marker")
    p_clear.add_argument("--config", default="config/scenario.yaml")

    args = parser.parse_args(argv)

    if args.cmd == "replay":
        result = run(args.config)
        # minimal stdout signal
        print(
            f"run_id={result.run_id} duckdb={result.duckdb_path} "
            f"attributions={len(result.records)} errors={len(result.errors)} "
            f"links={len(result.links)}"
        )
        return 0

    if args.cmd == "clear":
        was_first = clear(args.config)
        print(f"cleared first_session_was={str(was_first).lower()}")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
