"""
Airport directory loader.

Populates the airports table from the ip2location iata-icao CSV:

    "country_code","region_name","iata","icao","airport","latitude","longitude"
    "US","California","SFO","KSFO","San Francisco International Airport","37.619","-122.375"

The table is loaded once: population is skipped when it already holds
records, and only the designated loader instance (see
AirportDataConfig.is_loader) attempts it at all.

Usage:
    from flightweather.ingestion.airports import populate_airports

    populate_airports(store)
"""

import csv
import io
import logging
from typing import Dict, Iterable, List, Optional

import requests

from flightweather.config import config
from flightweather.errors import UpstreamError
from flightweather.models import Airport
from flightweather.models.airport import new_id
from flightweather.storage import Condition, TableStore

logger = logging.getLogger(__name__)


def fetch_airport_csv(url: Optional[str] = None, timeout: float = 30) -> str:
    """Download the raw airport CSV."""
    url = url or config.airports.source_url
    logger.info(f'Downloading airport data from {url}')
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f'Airport data download failed: {e}')
        raise UpstreamError('Airport data source unreachable') from e
    return response.text


def parse_airport_rows(text: str) -> List[Dict]:
    """
    Parse CSV text into records ready for insertion.

    Rows without coordinates are skipped. A blank IATA code becomes NULL;
    a repeated IATA code keeps the first row seen.
    """
    records = []
    seen_iata = set()
    skipped = 0

    for row in csv.DictReader(io.StringIO(text)):
        try:
            latitude = float(row['latitude'])
            longitude = float(row['longitude'])
        except (KeyError, TypeError, ValueError):
            skipped += 1
            continue

        iata = (row.get('iata') or '').strip().upper() or None
        if iata is not None:
            if iata in seen_iata:
                skipped += 1
                continue
            seen_iata.add(iata)

        records.append({
            'id': new_id(),
            'iata': iata,
            'icao': (row.get('icao') or '').strip().upper() or None,
            'airport': (row.get('airport') or '').strip(),
            'region_name': (row.get('region_name') or '').strip() or None,
            'latitude': latitude,
            'longitude': longitude,
            'country_code': (row.get('country_code') or '').strip().upper(),
        })

    if skipped:
        logger.debug(f'Skipped {skipped} airport rows (no coordinates or duplicate IATA)')

    return records


def populate_airports(
    store: TableStore,
    text: Optional[str] = None,
    is_loader: Optional[bool] = None,
) -> int:
    """
    Load the airport table if it is empty.

    Args:
        store: storage to write into
        text: CSV content; downloaded from the configured source if None
        is_loader: whether this instance is the designated loader
                   (defaults to config.airports.is_loader)

    Returns count of airports inserted (0 when skipped).
    """
    if is_loader is None:
        is_loader = config.airports.is_loader
    if not is_loader:
        logger.info('Not the designated airport loader, skipping population')
        return 0

    if store.count(Airport) > 0:
        logger.info('Airport table is not empty, skipping population')
        return 0

    if text is None:
        text = fetch_airport_csv()

    records = parse_airport_rows(text)
    logger.info(f'Populating {len(records)} records into the airport table...')

    with store.transaction() as txn:
        inserted = txn.create_many(Airport, records)

    logger.info('Finished populating the airport table')
    return inserted


def airports_by_country(store: TableStore, country_code: str) -> List[Airport]:
    """Airports in a country that have an IATA code, ordered by IATA."""
    return store.search(
        Airport,
        conditions=[
            Condition('iata', '', comparator='not_equal'),
            Condition('country_code', country_code.strip().upper()),
        ],
        sort='iata',
    )


def lookup_by_iata(store: TableStore, code: str) -> List[Airport]:
    """Airports matching an IATA code, case-insensitive."""
    if not code:
        return []
    return store.search(Airport, conditions=[Condition('iata', code.strip().upper())])


def to_records(airports: Iterable[Airport]) -> List[Dict]:
    return [a.to_dict() for a in airports]
