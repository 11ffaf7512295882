"""Protean Engine runner for the workshop domain.

Only needed when events are processed asynchronously (the ``production``
overlay of domain.toml). The engine delivers item events to the timeline
projector and to any other subscribers.

Usage:
    python src/server.py               # Run the workshop engine
    python src/server.py --test-mode   # Drain pending messages and exit
"""

import argparse

from protean.server.engine import Engine


def _get_domain():
    from workshop.domain import workshop

    workshop.init()
    return workshop


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Workshop Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and stop",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    engine = Engine(_get_domain(), test_mode=args.test_mode)
    engine.run()


if __name__ == "__main__":
    main()
