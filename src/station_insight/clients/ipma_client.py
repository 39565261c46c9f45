"""Client for the IPMA open-data station catalog and observation endpoints."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from station_insight.catalog import build_station_catalog
from station_insight.clients.http_session import configure_session
from station_insight.models.stations import (
    ObservationRecord,
    ObservationSnapshotPayload,
    StationRecord,
)
from station_insight.observations import (
    MalformedSnapshotError,
    extract_observations,
    parse_snapshot,
)
from station_insight.utils.logging_utils import (
    get_tagged_logger,
    setup_logging,
)

logger = get_tagged_logger(__name__, tag="ipma_client")

DEFAULT_BASE_URL = "https://api.ipma.pt/open-data/"
STATIONS_PATH = "observation/meteorology/stations/stations.json"
OBSERVATIONS_PATH = "observation/meteorology/stations/observations.json"
DEFAULT_USER_AGENT = "station-insight/ipma_client"
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_PROBE_TIMEOUT = 10  # seconds
DEFAULT_RETRIES = 0
DEFAULT_BACKOFF = 0.5  # seconds


class IpmaClientError(RuntimeError):
    """Raised when IPMA calls fail at the network or HTTP level."""


@dataclass
class IpmaClientConfig:
    """
    Configuration container for IpmaClient.

    Attributes
    ----------
    base_url:
        Root of the IPMA open-data API.
    user_agent:
        User-Agent header sent on every request.
    timeout_seconds:
        Default HTTP timeout for requests.
    retries:
        Retry attempts for transient 5xx/429 errors; zero means one attempt.
    retry_backoff_seconds:
        Backoff factor for the retry adapter when retries are enabled.
    """

    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: int = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_BACKOFF


@dataclass
class EndpointProbe:
    """What a single exploratory GET revealed about an endpoint."""

    url: str
    description: str
    status_code: int
    elapsed_seconds: float
    content_length: int
    structure: str  # "array", "object" or "unknown"
    data: Any = None
    preview: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def parsed(self) -> bool:
        return self.data is not None

    @property
    def size(self) -> Optional[int]:
        """Element count of a parsed array, or key count of a parsed object."""
        if isinstance(self.data, (list, dict)):
            return len(self.data)
        return None


def _structure_of(text: str) -> str:
    head = text.lstrip()[:1]
    if head == "[":
        return "array"
    if head == "{":
        return "object"
    return "unknown"


class IpmaClient:
    """Thin wrapper over the IPMA station endpoints."""

    def __init__(
        self,
        config: IpmaClientConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self._session = configure_session(
            session or requests.Session(),
            headers={"User-Agent": self._config.user_agent},
            timeout_seconds=self._config.timeout_seconds,
            retries=self._config.retries,
            retry_backoff_seconds=self._config.retry_backoff_seconds,
        )

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    @property
    def stations_url(self) -> str:
        return self._url(STATIONS_PATH)

    @property
    def observations_url(self) -> str:
        return self._url(OBSERVATIONS_PATH)

    # ------------------------------------------------------------------ #
    # HTTP fetchers                                                      #
    # ------------------------------------------------------------------ #
    def fetch_station_catalog(self) -> List[Dict[str, Any]]:
        """Fetch the raw station feature list from ``stations.json``."""
        url = self.stations_url
        logger.info(f"Fetching station catalog from {url}")
        payload = self._get(url)
        if not isinstance(payload, list):
            raise IpmaClientError(
                f"Expected a list of station features from {url}, got {type(payload).__name__}"
            )
        logger.info(f"Retrieved information for {len(payload)} weather stations")
        return payload

    def fetch_observations(self) -> Dict[str, Any]:
        """Fetch the raw time-first observation snapshot from ``observations.json``."""
        url = self.observations_url
        logger.info(f"Fetching observations from {url}")
        payload = self._get(url)
        if not isinstance(payload, dict):
            raise IpmaClientError(
                f"Expected an object keyed by timestamp from {url}, got {type(payload).__name__}"
            )
        logger.info(f"Retrieved {len(payload)} observation periods")
        return payload

    def load_station_catalog(self) -> List[StationRecord]:
        """Fetch and flatten the station catalog."""
        return build_station_catalog(self.fetch_station_catalog())

    def load_observations(self) -> ObservationSnapshotPayload:
        """Fetch and validate the observation snapshot."""
        return parse_snapshot(self.fetch_observations())

    def collect_observations(
        self,
        station_ids: Iterable[Any],
        catalog: Sequence[StationRecord] = (),
    ) -> Optional[List[ObservationRecord]]:
        """
        Fetch the current snapshot and extract ``station_ids``.

        Failures are downgraded: any request or payload problem is logged as a
        warning and ``None`` is returned so scheduled collection can carry on.
        """
        try:
            snapshot = self.load_observations()
        except (IpmaClientError, MalformedSnapshotError, requests.RequestException) as exc:
            logger.warning(f"Data collection error: {exc}")
            return None
        return extract_observations(snapshot, station_ids, catalog)

    def probe_endpoint(
        self,
        url: str,
        description: str = "Unknown endpoint",
        *,
        timeout_seconds: Optional[float] = None,
    ) -> EndpointProbe:
        """
        Issue one GET against ``url`` and describe the response.

        A body that is not valid JSON is reported with ``data=None`` rather
        than raised, so unfamiliar endpoints can be inspected safely.
        """
        logger.info(f"Exploring {description} at {url}")
        kwargs: Dict[str, Any] = {}
        if timeout_seconds is not None:
            kwargs["timeout"] = timeout_seconds
        try:
            resp = self._session.get(url, **kwargs)
        except requests.exceptions.RequestException as exc:
            logger.error(f"Error probing {url}: {exc}")
            raise IpmaClientError(f"Failed to reach {url}: {exc}") from exc

        text = resp.text or ""
        elapsed_td = getattr(resp, "elapsed", None)
        elapsed = elapsed_td.total_seconds() if elapsed_td is not None else 0.0
        probe = EndpointProbe(
            url=url,
            description=description,
            status_code=resp.status_code,
            elapsed_seconds=round(elapsed, 2),
            content_length=len(text),
            structure=_structure_of(text),
            preview=text[:500],
        )
        if not probe.ok:
            logger.warning(f"Request failed with status {resp.status_code} - cannot examine structure")
            return probe

        try:
            probe.data = resp.json()
        except ValueError as exc:
            logger.error(f"JSON parsing error for {url}: {exc}")
            return probe

        logger.info(
            f"Status {probe.status_code}, {probe.content_length} characters, "
            f"{probe.structure} with {probe.size} elements"
        )
        return probe

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #
    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = self._session.get(url, params=params)
        except requests.exceptions.RequestException as exc:
            logger.error(f"IPMA request to {url} failed: {exc}")
            raise IpmaClientError(f"Failed to reach {url}: {exc}") from exc
        if resp.status_code != 200:
            logger.error(f"IPMA request to {url} returned status {resp.status_code}")
            raise IpmaClientError(f"{url} returned status code {resp.status_code}")
        return resp.json()


def make_ipma_client_from_env(
    session: Optional[requests.Session] = None,
) -> IpmaClient:
    """Convenient factory to construct an IPMA client using environment variables."""
    config = IpmaClientConfig(
        base_url=os.getenv("IPMA_BASE_URL", DEFAULT_BASE_URL),
        user_agent=os.getenv("IPMA_USER_AGENT", DEFAULT_USER_AGENT),
        timeout_seconds=int(os.getenv("IPMA_TIMEOUT_SEC", DEFAULT_TIMEOUT)),
        retries=int(os.getenv("IPMA_RETRIES", DEFAULT_RETRIES)),
        retry_backoff_seconds=float(os.getenv("IPMA_RETRY_BACKOFF", DEFAULT_BACKOFF)),
    )
    return IpmaClient(config=config, session=session)


def main() -> None:
    """Manual test helper to print a catalog and snapshot sample."""
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    client = make_ipma_client_from_env()
    stations = client.load_station_catalog()
    logger.info(f"First station: {stations[0]!r}" if stations else "Catalog is empty")

    snapshot = client.load_observations()
    timestamps = snapshot.timestamps()
    if timestamps:
        first = timestamps[0]
        logger.info(f"{first}: {len(snapshot.stations_at(first))} stations reporting")


if __name__ == "__main__":
    main()
