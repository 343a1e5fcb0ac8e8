MATERIAL_CATEGORIES = (
    "Agricultural Waste",
    "Textile Waste",
    "Plastic Waste",
    "Metal Scrap",
    "Paper Waste",
    "Food Waste",
    "Construction Materials",
    "Electronic Waste",
    "Leather Waste",
    "Chemical Waste",
    "Organic Compost",
    "Other",
)

MATERIAL_CONDITIONS = (
    "New",
    "Used",
    "Leftover",
    "Waste",
    "Recyclable",
)

BUSINESS_TYPES = (
    "Farmer",
    "Crop Farmer",
    "Poultry Farm",
    "Dairy Farm",
    "Textile Factory",
    "Food Processing Unit",
    "Paper Mill",
    "Plastic Factory",
    "Leather Industry",
    "Metal and Scrap Industry",
    "Recycling Company",
    "Plastic Recycling",
    "Metal Recycling",
    "Electronic Waste Recycler",
    "Workshop",
    "Local Manufacturer",
    "Home-based Small Industry",
    "Construction Company",
    "Brick/Kiln",
    "Cement/Steel Supplier",
    "Contractor",
    "Waste Management Company",
    "Garbage Collector",
    "Municipal Waste Handler",
    "Organic Compost Company",
    "Other",
)


def match_choice(value: str, choices: tuple[str, ...]) -> str | None:
    """Return the canonical spelling of ``value`` from ``choices``, ignoring case."""
    wanted = value.strip().lower()
    for choice in choices:
        if choice.lower() == wanted:
            return choice
    return None
