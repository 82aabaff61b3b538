"""
Client for the order store.

Resolves order ids to delivery stops through the order service's REST API.
Orders are expected to be geocoded already; this client never geocodes
free-text addresses.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging
import time
from urllib.parse import quote

import requests

from delivery_routing.core.constants import DEFAULT_STOP_DEMAND
from delivery_routing.core.domain import Location, Stop, TimeWindow
from delivery_routing.core.exceptions import InvalidRequest, OrderStoreUnavailable
from delivery_routing.settings import (
    BACKOFF_FACTOR,
    DEFAULT_SERVICE_TIME_MINUTES,
    MAX_RETRIES,
    ORDER_SERVICE_API_TOKEN,
    ORDER_SERVICE_TIMEOUT_SECONDS,
    ORDER_SERVICE_URL,
    RETRY_DELAY_SECONDS,
    UNROUTABLE_ORDER_STATUSES,
)
from delivery_routing.utils.helpers import convert_time_str_to_minutes

logger = logging.getLogger(__name__)


class OrderStoreClient:
    """Narrow interface to the order store: order id in, Stop out."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None
    ):
        self.base_url = (base_url or ORDER_SERVICE_URL).rstrip('/')
        self.api_token = api_token if api_token is not None else ORDER_SERVICE_API_TOKEN
        self.timeout = timeout or ORDER_SERVICE_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.max_retries = max(1, max_retries if max_retries is not None else MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else RETRY_DELAY_SECONDS

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.api_token:
            headers['Authorization'] = f"Bearer {self.api_token}"
        return headers

    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        """
        Fetch one order record, retrying transport failures with exponential backoff.

        Raises:
            InvalidRequest: the order does not exist.
            OrderStoreUnavailable: the order store could not be reached.
        """
        url = f"{self.base_url}/api/orders/{quote(str(order_id), safe='')}"
        retry_count = 0

        while True:
            try:
                response = self.session.get(url, headers=self._headers(), timeout=self.timeout)
                if response.status_code == 404:
                    raise InvalidRequest(f"Order {order_id} not found in the order store")
                if response.status_code >= 500:
                    raise requests.HTTPError(
                        f"Order store returned {response.status_code}", response=response
                    )
                response.raise_for_status()
                return response.json()

            except requests.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else None
                if status_code is not None and status_code < 500:
                    raise InvalidRequest(f"Order store rejected lookup of order {order_id}: HTTP {status_code}")
                error = e
            except (requests.RequestException, ValueError) as e:
                error = e

            retry_count += 1
            logger.warning(f"Order store request for {order_id} failed: {error}")
            if retry_count >= self.max_retries:
                logger.error(f"Max retries reached fetching order {order_id}")
                raise OrderStoreUnavailable(f"Order store unavailable while fetching order {order_id}: {error}")

            sleep_time = self.retry_delay * (BACKOFF_FACTOR ** (retry_count - 1))
            logger.info(f"Retrying in {sleep_time} seconds")
            time.sleep(sleep_time)

    def resolve_stop(self, order_id: str) -> Stop:
        """Fetch an order and turn it into a Stop."""
        record = self.fetch_order(order_id)
        return self.stop_from_record(order_id, record)

    def resolve_stops(self, order_ids: Iterable[str]) -> List[Stop]:
        """
        Resolve a batch of order ids. Any unresolvable id fails the whole batch.
        """
        stops = [self.resolve_stop(str(order_id)) for order_id in order_ids]
        logger.info(f"Resolved {len(stops)} orders to stops")
        return stops

    @staticmethod
    def stop_from_record(order_id: str, record: Dict[str, Any]) -> Stop:
        """
        Map an order record to a Stop.

        Coordinates are read from ``latitude``/``longitude`` or from a
        ``delivery_location`` object with ``lat``/``lng``.

        Raises:
            InvalidRequest: the order is not geocoded or cannot be routed.
        """
        if not isinstance(record, dict):
            raise InvalidRequest(f"Order {order_id} returned an unexpected payload")

        status = record.get('status')
        if status in UNROUTABLE_ORDER_STATUSES:
            raise InvalidRequest(f"Order {order_id} is {status} and cannot be routed")

        latitude = record.get('latitude')
        longitude = record.get('longitude')
        delivery_location = record.get('delivery_location')
        if (latitude is None or longitude is None) and isinstance(delivery_location, dict):
            latitude = delivery_location.get('lat')
            longitude = delivery_location.get('lng')
        if latitude is None or longitude is None:
            raise InvalidRequest(f"Order {order_id} has not been geocoded")

        try:
            location = Location(latitude=float(latitude), longitude=float(longitude))
            demand = float(record.get('demand', DEFAULT_STOP_DEMAND))
            service_time = float(record.get('service_time_minutes', DEFAULT_SERVICE_TIME_MINUTES))
        except (TypeError, ValueError):
            raise InvalidRequest(f"Order {order_id} has malformed location or demand fields")

        return Stop(
            order_id=str(order_id),
            location=location,
            demand=demand,
            service_time=service_time,
            time_window=OrderStoreClient._time_window_from_record(order_id, record),
        )

    @staticmethod
    def _time_window_from_record(order_id: str, record: Dict[str, Any]) -> Optional[TimeWindow]:
        bounds = []
        for key in ('time_window_start', 'time_window_end'):
            value = record.get(key)
            if value is None or value == '':
                bounds.append(None)
            elif isinstance(value, str):
                minutes = convert_time_str_to_minutes(value)
                if minutes is None:
                    raise InvalidRequest(f"Order {order_id} has malformed {key}: {value}")
                bounds.append(minutes)
            else:
                try:
                    bounds.append(float(value))
                except (TypeError, ValueError):
                    raise InvalidRequest(f"Order {order_id} has malformed {key}: {value}")

        if bounds == [None, None]:
            return None
        return TimeWindow(earliest=bounds[0], latest=bounds[1])
