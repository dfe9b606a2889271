"""
MountainHub timeline API client.

Handles communication with the MountainHub REST API, including:
- Time-window queries (observations since N hours ago)
- Filtering by publisher and observation type
- Normalizing timeline items into ObservationRecord values

Timeline item format (fields we read):
    observation._id          - Observation id
    observation.type         - Observation category (e.g. snow_conditions)
    observation.reported_at  - Epoch milliseconds (or ISO-8601 string)
    observation.location     - [longitude, latitude] or {"lat", "lng"}
    observation.title        - Optional short title
    observation.description  - Free text
    observation.url          - Optional permalink
    actor.full_name          - Observer display name
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from obsimport.config import config
from obsimport.ingestion.providers import ObservationProvider
from obsimport.ingestion.records import ObservationRecord, parse_timestamp

logger = logging.getLogger(__name__)

SOURCE_NAME = 'mountainhub'


def _parse_location(value: Any) -> Tuple[Optional[float], Optional[float]]:
    """Return (latitude, longitude) from a GeoJSON-order pair or a lat/lng dict."""
    try:
        if isinstance(value, (list, tuple)) and len(value) >= 2:
            return float(value[1]), float(value[0])
        if isinstance(value, dict):
            lat = value.get('lat', value.get('latitude'))
            lon = value.get('lng', value.get('lon', value.get('longitude')))
            if lat is not None and lon is not None:
                return float(lat), float(lon)
    except (TypeError, ValueError):
        pass
    return None, None


def parse_timeline_item(item: Dict[str, Any]) -> Optional[ObservationRecord]:
    """
    Parse one MountainHub timeline item into an ObservationRecord.

    Returns None if the item is malformed or missing an id or timestamp.
    """
    if not isinstance(item, dict):
        return None

    obs = item.get('observation')
    if not isinstance(obs, dict):
        return None

    external_id = obs.get('_id') or obs.get('id')
    if not external_id:
        return None

    observed_at = parse_timestamp(obs.get('reported_at') or obs.get('timestamp'))
    if observed_at is None:
        return None

    latitude, longitude = _parse_location(obs.get('location'))

    author = None
    actor = item.get('actor')
    if isinstance(actor, dict):
        author = actor.get('full_name') or actor.get('name')

    title = obs.get('title')
    if isinstance(title, str):
        title = title.strip() or None

    return ObservationRecord(
        source=SOURCE_NAME,
        external_id=str(external_id),
        observed_at=observed_at,
        latitude=latitude,
        longitude=longitude,
        obs_type=obs.get('type'),
        title=title,
        description=obs.get('description'),
        author=author,
        url=obs.get('url'),
        raw=item,
    )


class MountainHubClient(ObservationProvider):
    """
    Client for the MountainHub timeline API.

    Handles:
    - GET requests to /timeline
    - Lookback window computed at call time
    - Request timeout so a stalled provider cannot hang an import
    """

    name = SOURCE_NAME

    def __init__(
        self,
        base_url: str = 'https://api.mountainhub.com',
        publisher: str = 'all',
        obs_type: str = 'snow_conditions',
        limit: int = 100,
        lookback_hours: int = 24,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.publisher = publisher
        self.obs_type = obs_type
        self.limit = limit
        self.lookback_hours = lookback_hours
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'Accept-version': '1',
        })

    @classmethod
    def from_config(cls) -> 'MountainHubClient':
        """Create client from application configuration."""
        return cls(
            base_url=config.mountainhub.base_url,
            publisher=config.mountainhub.publisher,
            obs_type=config.mountainhub.obs_type,
            limit=config.mountainhub.limit,
            lookback_hours=config.mountainhub.lookback_hours,
            timeout=config.mountainhub.timeout_seconds,
        )

    def _since_ms(self) -> int:
        return int((time.time() - self.lookback_hours * 3600) * 1000)

    def get_timeline(self, since_ms: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch raw timeline items from MountainHub.

        Args:
            since_ms: Only items newer than this epoch-millisecond timestamp
                      (defaults to now minus the configured lookback)

        Returns:
            List of raw timeline item dicts

        Raises:
            requests.RequestException on network/API errors
            ValueError if the response body is not the expected JSON shape
        """
        url = f'{self.base_url}/timeline'
        params = {
            'publisher': self.publisher,
            'obs_type': self.obs_type,
            'limit': self.limit,
            'since': since_ms if since_ms is not None else self._since_ms(),
        }

        logger.debug(f'Fetching timeline: {url} params={params}')

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout:
            logger.error('MountainHub API timeout')
            raise
        except requests.exceptions.HTTPError as e:
            logger.error(f'MountainHub API error: {e.response.status_code}')
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f'MountainHub request failed: {e}')
            raise

        if not isinstance(data, dict):
            raise ValueError('MountainHub timeline response is not a JSON object')

        results = data.get('results') or []
        if not isinstance(results, list):
            raise ValueError('MountainHub timeline "results" is not a list')

        logger.info(f'Received {len(results)} timeline items from MountainHub')
        return results

    def fetch_observations(self) -> List[ObservationRecord]:
        """Fetch and normalize recent observations."""
        items = self.get_timeline()

        records = []
        for item in items:
            record = parse_timeline_item(item)
            if record:
                records.append(record)

        dropped = len(items) - len(records)
        if dropped:
            logger.debug(f'Dropped {dropped} malformed MountainHub items')

        return records
