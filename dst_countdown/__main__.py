import argparse
import json
import logging
import sys
from datetime import datetime

from .api import build_payload, create_app
from .calculator import compute_window
from .config import configure_logging, get_settings
from .countdown import Mood, RenderSettings, TimeFormat, render
from .countries import default_table
from .errors import DstCountdownError
from .rules import compute_uk_window

logger = logging.getLogger("dst_countdown")


def _parse_instant(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 datetime: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dst_countdown",
        description="Countdown to the next daylight saving time change.",
    )
    sub = parser.add_subparsers(dest="command")

    show = sub.add_parser("show", help="print the countdown (default)")
    show.add_argument("--country", help="ISO 3166 alpha-2 code, e.g. SE")
    show.add_argument("--tz", help="IANA timezone, overrides the country's zone")
    show.add_argument("--at", type=_parse_instant, help="reference instant (ISO-8601)")
    show.add_argument(
        "--format",
        choices=[f.value for f in TimeFormat],
        default=TimeFormat.SECONDS.value,
    )
    show.add_argument(
        "--mood", choices=[m.value for m in Mood], default=Mood.PLAIN.value
    )
    show.add_argument(
        "--uk", action="store_true", help="use the fixed UK rule instead of a scan"
    )
    show.add_argument("--json", action="store_true", help="print the API payload")

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def _show(args: argparse.Namespace) -> int:
    settings = get_settings()
    reference = args.at or settings.now()

    if args.uk:
        window = compute_uk_window(reference, settings.SEARCH_HORIZON_YEARS)
    else:
        table = default_table().with_default(settings.DEFAULT_COUNTRY)
        resolution = table.resolve(args.country)
        if resolution.fallback is None:
            timezone_name = args.tz or resolution.effective.timezone
        else:
            timezone_name = resolution.effective.timezone
            print(
                f"{resolution.country.flag} {resolution.country.name} does not "
                f"observe DST; showing {resolution.fallback.name}",
                file=sys.stderr,
            )
        window = compute_window(
            timezone_name,
            reference,
            settings.SEARCH_HORIZON_YEARS,
            settings.TRANSITION_POLICY,
        )

    if args.json:
        print(json.dumps(build_payload(window), indent=2))
        return 0

    render_settings = RenderSettings(TimeFormat(args.format), Mood(args.mood))
    for line in render(window, reference, render_settings):
        print(line)
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in ("show", "serve", "-h", "--help"):
        argv.insert(0, "show")
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if args.command == "serve":
        import uvicorn

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return 0

    try:
        return _show(args)
    except DstCountdownError as exc:
        logger.debug("Countdown failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
