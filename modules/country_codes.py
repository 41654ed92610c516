"""
Common country-name variations -> canonical dataset names.

The risk table, the city list and the area table each spell a handful of
countries differently from what travellers type ("UK", "USA", "Czechia").
Lookups pass user text through ``canonical_country_name`` first.
"""

# lowercase alias -> canonical name
COUNTRY_ALIASES: dict[str, str] = {
    "usa": "United States", "us": "United States", "u.s.": "United States",
    "america": "United States", "united states of america": "United States",
    "uk": "United Kingdom", "u.k.": "United Kingdom", "britain": "United Kingdom",
    "great britain": "United Kingdom", "england": "United Kingdom",
    "drc": "Democratic Republic of the Congo", "dr congo": "Democratic Republic of the Congo",
    "uae": "United Arab Emirates", "emirates": "United Arab Emirates",
    "czechia": "Czech Republic", "east timor": "Timor-Leste",
    "swaziland": "Eswatini", "macedonia": "North Macedonia",
    "vatican": "Vatican City", "holy see": "Vatican City",
    "turkiye": "Turkey", "türkiye": "Turkey",
    "burma": "Myanmar", "ivory coast": "Côte d'Ivoire",
    "korea, south": "South Korea", "republic of korea": "South Korea",
    "korea, north": "North Korea",
}


def canonical_country_name(name: str) -> str:
    """Return the canonical spelling for a known alias, else *name* trimmed."""
    cleaned = (name or "").strip()
    return COUNTRY_ALIASES.get(cleaned.lower(), cleaned)
