"""Prahari — Country Resolver.

Maps free-text location mentions (country names, capitals, well-known
armed actors) to a canonical entity using an ordered pattern table.
The first matching pattern wins, so the table order is the priority:

  - compound names come before the names they contain
    (South Sudan before Sudan, Nigeria before Niger, DR Congo before
    Republic of Congo)
  - Palestine / Gaza comes before Israel
  - regional and ambiguous aliases (Sahel, Donbas, bare "Congo") come last,
    so a specific country named alongside them always wins

Resolutions are memoized per exact input text for the process lifetime.
"""

import logging
import re
from typing import Iterable, Optional

from backend.models import CanonicalEntity

logger = logging.getLogger("prahari.fusion")

# ── Canonical entity table ──────────────────────────────────────────────
# id: (display name, lat, lon, ISO 3166-1 alpha-2)
ENTITY_TABLE: dict[str, tuple[str, float, float, Optional[str]]] = {
    "palestine":                ("Palestine",                31.4,   34.4,  "PS"),
    "myanmar":                  ("Myanmar",                  19.7,   96.1,  "MM"),
    "syria":                    ("Syria",                    34.8,   38.5,  "SY"),
    "mexico":                   ("Mexico",                   23.6, -102.6,  "MX"),
    "nigeria":                  ("Nigeria",                   9.1,    8.7,  "NG"),
    "ecuador":                  ("Ecuador",                  -1.8,  -78.2,  "EC"),
    "brazil":                   ("Brazil",                  -14.2,  -51.9,  "BR"),
    "haiti":                    ("Haiti",                    18.9,  -72.3,  "HT"),
    "south-sudan":              ("South Sudan",               6.9,   31.3,  "SS"),
    "sudan":                    ("Sudan",                    15.5,   30.0,  "SD"),
    "pakistan":                 ("Pakistan",                 30.4,   69.3,  "PK"),
    "cameroon":                 ("Cameroon",                  3.8,   11.5,  "CM"),
    "dr-congo":                 ("DR Congo",                 -4.0,   21.8,  "CD"),
    "republic-of-congo":        ("Republic of the Congo",    -0.2,   15.8,  "CG"),
    "ukraine":                  ("Ukraine",                  48.4,   31.2,  "UA"),
    "colombia":                 ("Colombia",                  4.7,  -74.1,  "CO"),
    "yemen":                    ("Yemen",                    15.5,   48.5,  "YE"),
    "india":                    ("India",                    20.6,   79.0,  "IN"),
    "guatemala":                ("Guatemala",                15.8,  -90.2,  "GT"),
    "somalia":                  ("Somalia",                   5.2,   46.2,  "SO"),
    "lebanon":                  ("Lebanon",                  33.9,   35.5,  "LB"),
    "russia":                   ("Russia",                   61.5,  105.3,  "RU"),
    "bangladesh":               ("Bangladesh",               23.7,   90.4,  "BD"),
    "ethiopia":                 ("Ethiopia",                  9.0,   40.5,  "ET"),
    "iraq":                     ("Iraq",                     33.3,   44.4,  "IQ"),
    "kenya":                    ("Kenya",                    -1.3,   36.8,  "KE"),
    "honduras":                 ("Honduras",                 15.2,  -86.2,  "HN"),
    "mali":                     ("Mali",                     12.7,   -8.0,  "ML"),
    "jamaica":                  ("Jamaica",                  18.1,  -77.3,  "JM"),
    "central-african-republic": ("Central African Republic",  6.6,   20.9,  "CF"),
    "burundi":                  ("Burundi",                  -3.4,   29.9,  "BI"),
    "philippines":              ("Philippines",              12.9,  122.0,  "PH"),
    "afghanistan":              ("Afghanistan",              34.5,   69.2,  "AF"),
    "trinidad-and-tobago":      ("Trinidad and Tobago",      10.7,  -61.5,  "TT"),
    "venezuela":                ("Venezuela",                 6.4,  -66.6,  "VE"),
    "libya":                    ("Libya",                    26.3,   17.2,  "LY"),
    "niger":                    ("Niger",                    17.6,    8.1,  "NE"),
    "burkina-faso":             ("Burkina Faso",             12.4,   -1.6,  "BF"),
    "puerto-rico":              ("Puerto Rico",              18.2,  -66.6,  "PR"),
    "mozambique":               ("Mozambique",              -18.7,   35.5,  "MZ"),
    "iran":                     ("Iran",                     32.0,   53.0,  "IR"),
    "uganda":                   ("Uganda",                    1.4,   32.3,  "UG"),
    "israel":                   ("Israel",                   31.8,   35.2,  "IL"),
    "peru":                     ("Peru",                     -9.2,  -75.0,  "PE"),
    "ghana":                    ("Ghana",                     7.9,   -1.0,  "GH"),
    "indonesia":                ("Indonesia",                -0.8,  113.9,  "ID"),
    "chile":                    ("Chile",                   -35.7,  -71.5,  "CL"),
    "south-africa":             ("South Africa",            -30.6,   22.9,  "ZA"),
    "nepal":                    ("Nepal",                    28.4,   84.1,  "NP"),
    "belize":                   ("Belize",                   17.2,  -88.5,  "BZ"),
    "chad":                     ("Chad",                     15.5,   18.7,  "TD"),
    "armenia":                  ("Armenia",                  40.1,   45.0,  "AM"),
    "azerbaijan":               ("Azerbaijan",               40.1,   47.6,  "AZ"),
    "north-korea":              ("North Korea",              40.3,  127.5,  "KP"),
    "taiwan":                   ("Taiwan",                   23.7,  121.0,  "TW"),
}

# ── Ordered pattern table (first match wins) ────────────────────────────
PATTERN_TABLE: list[tuple[str, str]] = [
    # Compound and territory names first
    (r"\bpalestin\w*|\bgaza\b|\bwest\s+bank\b|\bhamas\b",                "palestine"),
    (r"south\s*sudan",                                                   "south-sudan"),
    (r"\bsudan\w*|\bkhartoum\b|\bdarfur\b|\bel[\s-]fasher\b",            "sudan"),
    (r"\bnigeria\w*|\bniger\s+delta\b|\bboko\s+haram\b",                 "nigeria"),
    (r"democratic\s+republic\s+of\s+(?:the\s+)?congo|\bdrc\b|\bdr\s*congo\b|\bgoma\b|\bm23\b", "dr-congo"),
    (r"\brepublic\s+of\s+(?:the\s+)?congo\b|\bbrazzaville\b",            "republic-of-congo"),
    (r"central\s*african\s*republic",                                    "central-african-republic"),
    (r"south\s*africa",                                                  "south-africa"),
    (r"north\s*korea|\bdprk\b|\bpyongyang\b",                            "north-korea"),
    (r"\btrinidad\b",                                                    "trinidad-and-tobago"),
    (r"\bpuerto\s*rico\b",                                               "puerto-rico"),
    (r"\bburkina\b|\bouagadougou\b",                                     "burkina-faso"),
    # Single-name countries
    (r"\bmyanmar\b|\bburm(?:a|ese)\b",                                   "myanmar"),
    (r"\bsyria\w*|\bdamascus\b|\baleppo\b",                              "syria"),
    (r"\bmexic\w*",                                                      "mexico"),
    (r"\becuador\w*",                                                    "ecuador"),
    (r"\bbrazil\w*",                                                     "brazil"),
    (r"\bhaiti\w*|\bport-au-prince\b",                                   "haiti"),
    (r"\bpakistan\w*",                                                   "pakistan"),
    (r"\bcameroon\w*",                                                   "cameroon"),
    (r"\bukrain\w*|\bkyiv\b|\bkharkiv\b|\bzaporizhzhia\b|\bodesa\b",     "ukraine"),
    (r"\bcolombia\w*",                                                   "colombia"),
    (r"\byemen\w*|\bhouthis?\b|\bhuthis?\b|\bsanaa\b",                   "yemen"),
    (r"\bindia\b|\bindian\b|\bmanipur\b",                                "india"),
    (r"\bguatemala\w*",                                                  "guatemala"),
    (r"\bsomali\w*|\bmogadishu\b|\bal[\s-]shabaab\b",                    "somalia"),
    (r"\bleban\w*|\bhezbollah\b|\bbeirut\b",                             "lebanon"),
    (r"\brussia\w*|\bmoscow\b|\bkremlin\b",                              "russia"),
    (r"\bbangladesh\w*|\bdhaka\b",                                       "bangladesh"),
    (r"\bethiopia\w*|\btigray\b|\bamhara\b|\boromia\b",                  "ethiopia"),
    (r"\biraq\w*|\bbaghdad\b",                                           "iraq"),
    (r"\bkenya\w*|\bnairobi\b",                                          "kenya"),
    (r"\bhondura\w*",                                                    "honduras"),
    (r"\bmali\b|\bmalian\b|\bbamako\b",                                  "mali"),
    (r"\bjamaica\w*",                                                    "jamaica"),
    (r"\bburundi\w*",                                                    "burundi"),
    (r"\bphilippine\w*|\bfilipino\b|\bmindanao\b",                       "philippines"),
    (r"\bafghan\w*|\bkabul\b|\btaliban\b",                               "afghanistan"),
    (r"\bvenezuela\w*|\bcaracas\b",                                      "venezuela"),
    (r"\blibya\w*|\btripoli\b|\bbenghazi\b",                             "libya"),
    (r"\bniger\b|\bniamey\b",                                            "niger"),
    (r"\bmozambi\w*|\bcabo\s+delgado\b",                                 "mozambique"),
    (r"\biran\b|\biranian\b|\btehran\b",                                 "iran"),
    (r"\buganda\w*",                                                     "uganda"),
    (r"\bisrael\w*|\bidf\b|\btel\s+aviv\b",                              "israel"),
    (r"\bperu\b|\bperuvian\b",                                           "peru"),
    (r"\bghana\w*",                                                      "ghana"),
    (r"\bindonesia\w*|\bpapua\b",                                        "indonesia"),
    (r"\bchile\b|\bchilean\b",                                           "chile"),
    (r"\bnepal\w*",                                                      "nepal"),
    (r"\bbelize\w*",                                                     "belize"),
    (r"\bchad\b|\bchadian\b|\bn'?djamena\b",                             "chad"),
    (r"\barmenia\w*|\byerevan\b",                                        "armenia"),
    (r"\bazerbaijan\w*|\bbaku\b",                                        "azerbaijan"),
    (r"\btaiwan\w*|\btaipei\b",                                          "taiwan"),
    # Regional / ambiguous aliases last
    (r"\bdonbas+\b|\bdonetsk\b|\bluhansk\b|\bcrimea\b",                  "ukraine"),
    (r"\bsahel\b",                                                       "mali"),
    (r"\bcongo\b|\bcongolese\b",                                         "dr-congo"),
]


def build_entities() -> dict[str, CanonicalEntity]:
    """Materialize ENTITY_TABLE as CanonicalEntity objects keyed by id."""
    return {
        entity_id: CanonicalEntity(
            id=entity_id,
            display_name=name,
            reference_lat=lat,
            reference_lon=lon,
            country_code=code,
        )
        for entity_id, (name, lat, lon, code) in ENTITY_TABLE.items()
    }


class CountryResolver:
    """Resolve free text to a CanonicalEntity via an ordered pattern table."""

    def __init__(
        self,
        patterns: Iterable[tuple[str, str]] = PATTERN_TABLE,
        entities: Optional[dict[str, CanonicalEntity]] = None,
    ):
        self._entities = entities if entities is not None else build_entities()
        self._patterns: list[tuple[re.Pattern, CanonicalEntity]] = []
        for pattern, entity_id in patterns:
            entity = self._entities.get(entity_id)
            if entity is None:
                raise ValueError(f"Pattern {pattern!r} points at unknown entity {entity_id!r}")
            self._patterns.append((re.compile(pattern, re.IGNORECASE), entity))
        self._memo: dict[str, Optional[CanonicalEntity]] = {}
        logger.debug("[resolver] %d patterns over %d entities", len(self._patterns), len(self._entities))

    def resolve(self, text: str) -> Optional[CanonicalEntity]:
        """Return the entity for the first matching pattern, or None."""
        if text in self._memo:
            return self._memo[text]

        match = None
        for regex, entity in self._patterns:
            if regex.search(text):
                match = entity
                break

        self._memo[text] = match
        return match

    def get(self, entity_id: str) -> Optional[CanonicalEntity]:
        return self._entities.get(entity_id)

    def entities(self) -> list[CanonicalEntity]:
        return list(self._entities.values())

    @property
    def memo_size(self) -> int:
        return len(self._memo)
