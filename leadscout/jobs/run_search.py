"""CLI job to crawl Google Places for leads and print them as JSON."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from leadscout.core.config import get_settings
from leadscout.core.errors import LeadScoutError
from leadscout.core.service import create_service
from leadscout.models import SearchRequest

logger = logging.getLogger(__name__)


def build_request(args: argparse.Namespace) -> SearchRequest:
    if args.state:
        return SearchRequest.state_wide(
            business_type=args.type_business,
            region=args.state,
            max_results=args.max_results,
            max_areas=args.max_areas,
        )
    return SearchRequest.single_area(
        business_type=args.type_business,
        location=args.location,
        radius_miles=args.radius,
        max_results=args.max_results,
    )


def run_search_job(args: argparse.Namespace) -> dict:
    service = create_service()
    result = service.search(build_request(args), owner_id=args.owner)
    logger.info("Completed search: total=%d cached=%s", result.total, result.from_cache)
    return result.to_dict()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search Google Places for business leads")
    parser.add_argument("--type", dest="type_business", required=True, help="Business type to search")
    area = parser.add_mutually_exclusive_group(required=True)
    area.add_argument("--location", dest="location", help="Address or place to search around")
    area.add_argument("--state", dest="state", help="US state to crawl city by city")
    parser.add_argument("--radius", dest="radius", type=float, default=10.0, help="Search radius in miles")
    parser.add_argument("--max-results", dest="max_results", type=int, default=20, help="Maximum businesses to return")
    parser.add_argument(
        "--max-areas",
        dest="max_areas",
        type=int,
        default=get_settings().max_areas_limit,
        help="Maximum cities to search in state-wide mode",
    )
    parser.add_argument("--owner", dest="owner", help="Owner id whose saved leads are checked for duplicates")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        payload = run_search_job(args)
    except LeadScoutError as exc:
        logger.error("Search failed: %s", exc)
        raise SystemExit(2) from exc

    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
