# WORKFLOW: Approximate map coordinates for imported companies.
# Used by: company import job (companies.latitude / longitude)
# Coordinates are one representative city per US state / Canadian province;
# anything unknown falls back to the geographic centre of the country.

from typing import Optional, Tuple

STATE_COORDINATES = {
    'CA': (34.0522, -118.2437),  # Los Angeles
    'NY': (40.7128, -74.0060),
    'TX': (32.7767, -96.7970),  # Dallas
    'FL': (25.7617, -80.1918),  # Miami
    'IL': (41.8781, -87.6298),  # Chicago
    'OH': (39.9612, -82.9988),  # Columbus
    'GA': (33.7490, -84.3880),  # Atlanta
    'VA': (37.4316, -78.6569),  # Richmond
    'MA': (42.3601, -71.0589),  # Boston
    'MI': (42.3314, -83.0458),  # Detroit
    'OR': (45.5152, -122.6784),  # Portland
    'WA': (47.6062, -122.3321),  # Seattle
    'AZ': (33.4484, -112.0740),  # Phoenix
    'IN': (39.7684, -86.1581),  # Indianapolis
    'KY': (38.2009, -84.8733),  # Frankfort
    'NV': (39.1638, -119.7674),  # Carson City
    'MD': (39.0458, -76.6413),  # Annapolis
    'KS': (39.04, -95.69),  # Topeka
    'HI': (21.30895, -157.826182),  # Honolulu
    'ND': (46.8083, -100.7837),  # Bismarck
    'ON': (43.6532, -79.3832),  # Toronto
}

US_CENTER = (39.8283, -98.5795)
CANADA_DEFAULT = (45.4215, -75.6972)  # Ottawa


def approximate_coordinates(state: Optional[str], country: Optional[str]) -> Tuple[float, float]:
    """
    Return (latitude, longitude) for a company location.

    Args:
        state: State / province code (e.g. "CA", "ON")
        country: Canonical country name

    Returns:
        Coordinates of the state's representative city, or a country default
    """
    code = (state or '').strip().upper()
    if code in STATE_COORDINATES:
        return STATE_COORDINATES[code]
    if country == 'Canada':
        return CANADA_DEFAULT
    return US_CENTER
