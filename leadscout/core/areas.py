"""Area listing for state-wide crawls and the provider cost estimate shown beforehand."""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from leadscout.core.errors import InvalidRequest
from leadscout.etl.normalize import normalize_text

logger = logging.getLogger(__name__)

TEXT_SEARCH_COST = 0.032
DETAILS_COST = 0.017
RESULTS_PER_PAGE = 20

# Largest cities first; crawls walk this order.
STATE_CITIES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "AL": ("Alabama", ("Birmingham", "Montgomery", "Huntsville", "Mobile", "Tuscaloosa")),
    "AK": ("Alaska", ("Anchorage", "Fairbanks", "Juneau", "Wasilla", "Sitka")),
    "AZ": ("Arizona", ("Phoenix", "Tucson", "Mesa", "Chandler", "Scottsdale")),
    "AR": ("Arkansas", ("Little Rock", "Fayetteville", "Fort Smith", "Springdale", "Jonesboro")),
    "CA": ("California", ("Los Angeles", "San Diego", "San Jose", "San Francisco", "Fresno")),
    "CO": ("Colorado", ("Denver", "Colorado Springs", "Aurora", "Fort Collins", "Boulder")),
    "CT": ("Connecticut", ("Bridgeport", "New Haven", "Stamford", "Hartford", "Waterbury")),
    "DE": ("Delaware", ("Wilmington", "Dover", "Newark", "Middletown", "Smyrna")),
    "FL": ("Florida", ("Jacksonville", "Miami", "Tampa", "Orlando", "St. Petersburg")),
    "GA": ("Georgia", ("Atlanta", "Augusta", "Columbus", "Savannah", "Athens")),
    "HI": ("Hawaii", ("Honolulu", "Hilo", "Kailua", "Pearl City", "Kapolei")),
    "ID": ("Idaho", ("Boise", "Meridian", "Nampa", "Idaho Falls", "Pocatello")),
    "IL": ("Illinois", ("Chicago", "Aurora", "Naperville", "Joliet", "Rockford")),
    "IN": ("Indiana", ("Indianapolis", "Fort Wayne", "Evansville", "South Bend", "Carmel")),
    "IA": ("Iowa", ("Des Moines", "Cedar Rapids", "Davenport", "Sioux City", "Iowa City")),
    "KS": ("Kansas", ("Wichita", "Overland Park", "Kansas City", "Olathe", "Topeka")),
    "KY": ("Kentucky", ("Louisville", "Lexington", "Bowling Green", "Owensboro", "Covington")),
    "LA": ("Louisiana", ("New Orleans", "Baton Rouge", "Shreveport", "Lafayette", "Lake Charles")),
    "ME": ("Maine", ("Portland", "Lewiston", "Bangor", "South Portland", "Auburn")),
    "MD": ("Maryland", ("Baltimore", "Frederick", "Rockville", "Gaithersburg", "Annapolis")),
    "MA": ("Massachusetts", ("Boston", "Worcester", "Springfield", "Cambridge", "Lowell")),
    "MI": ("Michigan", ("Detroit", "Grand Rapids", "Warren", "Sterling Heights", "Ann Arbor")),
    "MN": ("Minnesota", ("Minneapolis", "St. Paul", "Rochester", "Duluth", "Bloomington")),
    "MS": ("Mississippi", ("Jackson", "Gulfport", "Southaven", "Hattiesburg", "Biloxi")),
    "MO": ("Missouri", ("Kansas City", "St. Louis", "Springfield", "Columbia", "Independence")),
    "MT": ("Montana", ("Billings", "Missoula", "Great Falls", "Bozeman", "Butte")),
    "NE": ("Nebraska", ("Omaha", "Lincoln", "Bellevue", "Grand Island", "Kearney")),
    "NV": ("Nevada", ("Las Vegas", "Henderson", "Reno", "North Las Vegas", "Sparks")),
    "NH": ("New Hampshire", ("Manchester", "Nashua", "Concord", "Dover", "Rochester")),
    "NJ": ("New Jersey", ("Newark", "Jersey City", "Paterson", "Elizabeth", "Trenton")),
    "NM": ("New Mexico", ("Albuquerque", "Las Cruces", "Rio Rancho", "Santa Fe", "Roswell")),
    "NY": ("New York", ("New York", "Buffalo", "Rochester", "Yonkers", "Syracuse")),
    "NC": ("North Carolina", ("Charlotte", "Raleigh", "Greensboro", "Durham", "Winston-Salem")),
    "ND": ("North Dakota", ("Fargo", "Bismarck", "Grand Forks", "Minot", "West Fargo")),
    "OH": ("Ohio", ("Columbus", "Cleveland", "Cincinnati", "Toledo", "Akron")),
    "OK": ("Oklahoma", ("Oklahoma City", "Tulsa", "Norman", "Broken Arrow", "Edmond")),
    "OR": ("Oregon", ("Portland", "Salem", "Eugene", "Gresham", "Hillsboro")),
    "PA": ("Pennsylvania", ("Philadelphia", "Pittsburgh", "Allentown", "Reading", "Erie")),
    "RI": ("Rhode Island", ("Providence", "Warwick", "Cranston", "Pawtucket", "Newport")),
    "SC": ("South Carolina", ("Charleston", "Columbia", "North Charleston", "Greenville", "Rock Hill")),
    "SD": ("South Dakota", ("Sioux Falls", "Rapid City", "Aberdeen", "Brookings", "Watertown")),
    "TN": ("Tennessee", ("Nashville", "Memphis", "Knoxville", "Chattanooga", "Clarksville")),
    "TX": ("Texas", ("Houston", "San Antonio", "Dallas", "Austin", "Fort Worth")),
    "UT": ("Utah", ("Salt Lake City", "West Valley City", "Provo", "West Jordan", "Orem")),
    "VT": ("Vermont", ("Burlington", "South Burlington", "Rutland", "Barre", "Montpelier")),
    "VA": ("Virginia", ("Virginia Beach", "Norfolk", "Chesapeake", "Richmond", "Arlington")),
    "WA": ("Washington", ("Seattle", "Spokane", "Tacoma", "Vancouver", "Bellevue")),
    "WV": ("West Virginia", ("Charleston", "Huntington", "Morgantown", "Parkersburg", "Wheeling")),
    "WI": ("Wisconsin", ("Milwaukee", "Madison", "Green Bay", "Kenosha", "Racine")),
    "WY": ("Wyoming", ("Cheyenne", "Casper", "Laramie", "Gillette", "Rock Springs")),
}

_BY_NAME = {normalize_text(name): code for code, (name, _) in STATE_CITIES.items()}


@dataclass(frozen=True)
class CostEstimate:
    per_area: float
    total: float

    def to_dict(self) -> Dict[str, str]:
        return {"perCity": f"${self.per_area:.2f}", "total": f"${self.total:.2f}"}


def resolve_state(region: str) -> str:
    """Map a state name or two-letter code to its code."""
    key = normalize_text(region)
    if key.upper() in STATE_CITIES:
        return key.upper()
    code = _BY_NAME.get(key)
    if code is None:
        raise InvalidRequest(f"unknown state: {region!r}")
    return code


class StaticAreaSource:
    """Lists the largest cities of a US state as ``"City, ST"`` labels."""

    def canonical_region(self, region: str) -> str:
        return resolve_state(region)

    def list_areas(self, region: str, max_areas: int) -> List[str]:
        code = resolve_state(region)
        cities = STATE_CITIES[code][1]
        return [f"{city}, {code}" for city in cities[: max(0, max_areas)]]


def estimate_crawl_cost(area_count: int, results_per_area: int) -> CostEstimate:
    pages = max(1, math.ceil(results_per_area / RESULTS_PER_PAGE))
    per_area = pages * TEXT_SEARCH_COST + results_per_area * DETAILS_COST
    return CostEstimate(per_area=per_area, total=per_area * area_count)
