"""Command-line entry point: show the temperature where the caller is."""
import argparse
import sys
from typing import List, Optional

from tstats import config
from tstats.data_sources import build_resolvers
from tstats.display import ProgressDisplay, print_result
from tstats.errors import PipelineError
from tstats.pipeline import WeatherPipeline
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        "tstats",
        description="Show the current temperature at your IP-derived location.",
    )
    parser.add_argument(
        "-r", "--refresh",
        action="store_true",
        help="Delete cached location and weather before running",
    )
    return parser.parse_args(argv)


def build_pipeline(settings: config.Settings, *, show_progress: bool) -> WeatherPipeline:
    resolvers = build_resolvers(settings)
    pipeline = WeatherPipeline(
        resolvers.cache,
        resolvers.ip,
        resolvers.geolocation,
        resolvers.weather,
    )
    pipeline.subscribe(ProgressDisplay(disable=not show_progress))
    return pipeline


def main(argv: Optional[List[str]] = None, settings: Optional[config.Settings] = None) -> int:
    args = parse_args(argv)
    settings = settings or config.settings
    setup_logging(level=settings.log_level.upper(), job_name="tstats")

    pipeline = build_pipeline(settings, show_progress=settings.show_progress)
    try:
        result = pipeline.run(force_refresh=args.refresh)
    except PipelineError as exc:
        print(f"error ({exc.kind}): {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as exc:
        # clearing the cache can fail on permissions
        logger.debug("Cache directory error: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED

    logger.info("Finished (from_cache=%s)", result.from_cache)
    print_result(result)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
