"""
Jira REST API Client Module
Handles all communication with the Jira Cloud REST and Agile APIs.
"""

import time
from typing import Any, Dict, Generator, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jira_sync.config_manager import ConfigManager
from jira_sync.utils.logger import get_logger

logger = get_logger(__name__)


class JiraAPIError(Exception):
    """Raised when a Jira request fails or returns a non-2xx status."""

    def __init__(self, message: str, status_code: int = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class JiraClient:
    """
    Jira REST API client with offset and cursor pagination.

    Args:
        jira_config: Optional ``jira`` config section. Defaults to the
            section loaded by ConfigManager.
    """

    def __init__(self, jira_config: Dict = None):
        if jira_config is None:
            jira_config = ConfigManager().get_jira_config()

        self.base_url = (jira_config.get('url') or '').rstrip('/')
        self.email = jira_config.get('email') or ''
        self.api_token = jira_config.get('api_token') or ''
        self.timeout = float(jira_config.get('timeout', 30))

        self.requests_per_second = float(jira_config.get('requests_per_second', 0) or 0)
        self.max_retries = int(jira_config.get('max_retries', 0) or 0)
        self.retry_delay = float(jira_config.get('retry_delay', 1))

        self._last_request_time = 0
        self._session = self._create_session()

        logger.info(f"Jira client initialized for {self.base_url}")

    def _create_session(self) -> requests.Session:
        """Create requests session with Basic auth and optional retries."""
        session = requests.Session()

        # Basic auth header: base64("email:api_token")
        session.auth = (self.email, self.api_token)

        session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })

        if self.max_retries > 0:
            retry_strategy = Retry(
                total=self.max_retries,
                backoff_factor=self.retry_delay,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=['GET'],
                raise_on_status=False
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount('https://', adapter)
            session.mount('http://', adapter)

        return session

    def _rate_limit(self) -> None:
        """Apply rate limiting between requests."""
        if self.requests_per_second <= 0:
            return

        min_interval = 1.0 / self.requests_per_second
        elapsed = time.time() - self._last_request_time

        if elapsed < min_interval:
            time.sleep(min_interval - elapsed)

        self._last_request_time = time.time()

    def _make_request(self, method: str, endpoint: str, params: Dict = None) -> Any:
        """
        Make HTTP request to the Jira API.

        Args:
            method: HTTP method
            endpoint: Path below ``/rest/`` (e.g. ``api/2/field``)
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            JiraAPIError: If credentials are missing or the request fails
        """
        if not self.base_url:
            raise JiraAPIError("Jira base URL is not configured")
        if not self.email or not self.api_token:
            raise JiraAPIError("Jira email and API token must be configured (JIRA_EMAIL, JIRA_API_TOKEN)")

        self._rate_limit()

        url = f"{self.base_url}/rest/{endpoint.lstrip('/')}"

        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise JiraAPIError(f"Request failed: {str(e)}")

        if response.status_code >= 400:
            body = self._decode_error_body(response)
            logger.error(f"Jira API error on {endpoint}: {response.status_code} {body}")

            if response.status_code == 401:
                raise JiraAPIError("Authentication failed. Check your credentials.", 401, body)
            elif response.status_code == 403:
                raise JiraAPIError("Access forbidden. Check permissions.", 403, body)
            elif response.status_code == 404:
                raise JiraAPIError(f"Resource not found: {endpoint}", 404, body)
            raise JiraAPIError(
                f"Jira API error: {response.status_code} {response.reason or ''}".strip(),
                response.status_code,
                body
            )

        try:
            return response.json() if response.text else {}
        except ValueError:
            raise JiraAPIError(f"Invalid JSON returned by {endpoint}", response.status_code, response.text[:1000])

    @staticmethod
    def _decode_error_body(response: requests.Response) -> Any:
        """Decode an error body for diagnostics, falling back to raw text."""
        if not response.text:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text[:2000]

    def _paginate(
        self,
        endpoint: str,
        params: Dict = None,
        data_key: Optional[str] = 'values',
        max_results: int = 100,
        pagination_strategy: str = 'offset'
    ) -> Generator[Dict, None, None]:
        """
        Paginate through API results.

        Args:
            endpoint: API endpoint
            params: Query parameters
            data_key: Key containing results in response; None when the
                response body is itself the result array
            max_results: Results per page
            pagination_strategy: 'offset' (startAt) or 'cursor' (nextPageToken)

        Yields:
            Individual result items
        """
        params = dict(params or {})
        params['maxResults'] = max_results

        start_at = 0
        next_page_token = None

        while True:
            if pagination_strategy == 'offset':
                params['startAt'] = start_at
            elif pagination_strategy == 'cursor':
                # Cursor endpoints reject startAt
                params.pop('startAt', None)
                if next_page_token:
                    params['nextPageToken'] = next_page_token
            else:
                raise ValueError(f"Unknown pagination strategy: {pagination_strategy}")

            response = self._make_request('GET', endpoint, params=params)

            if data_key is None:
                items = response if isinstance(response, list) else []
            else:
                items = response.get(data_key) or []

            if not items:
                break

            for item in items:
                yield item

            is_last = isinstance(response, dict) and response.get('isLast') is True

            if pagination_strategy == 'offset':
                start_at += len(items)

                if isinstance(response, list):
                    # Bare arrays carry no isLast/total; a short page is the end
                    if len(items) < max_results:
                        break
                else:
                    # The server may cap maxResults below the requested size
                    total = response.get('total')
                    if is_last or (total is not None and start_at >= total):
                        break
                logger.debug(f"Fetched {start_at} items from {endpoint}")

            else:
                next_page_token = response.get('nextPageToken')
                if is_last or not next_page_token:
                    break
                logger.debug(f"Fetched page from {endpoint}, getting next page...")

    # ========================================
    # Field Methods
    # ========================================

    def fetch_fields(self) -> List[Dict]:
        """Fetch all fields, system and custom (single call, no pagination)."""
        fields = self._make_request('GET', 'api/2/field')
        return fields if isinstance(fields, list) else []

    # ========================================
    # User Methods
    # ========================================

    def fetch_users(self, max_results: int = 1000) -> List[Dict]:
        """Fetch all users (active and inactive)."""
        logger.info("Fetching all users")
        users = list(self._paginate('api/2/users', data_key=None, max_results=max_results))
        logger.info(f"Fetched {len(users)} users")
        return users

    # ========================================
    # Project Methods
    # ========================================

    def fetch_projects(self, category_id: str = None, max_results: int = 1000) -> List[Dict]:
        """Fetch all projects, optionally filtered by project category."""
        params = {}
        if category_id:
            params['categoryId'] = category_id

        logger.info(f"Fetching projects (categoryId={category_id})")
        projects = list(self._paginate(
            'api/2/project/search',
            params=params,
            data_key='values',
            max_results=max_results
        ))
        logger.info(f"Fetched {len(projects)} projects")
        return projects

    # ========================================
    # Board & Sprint Methods (Agile API)
    # ========================================

    def fetch_boards(self, project_key: str = None, max_results: int = 1000) -> List[Dict]:
        """Fetch all boards, optionally filtered by project."""
        params = {}
        if project_key:
            params['projectKeyOrId'] = project_key

        return list(self._paginate(
            'agile/1.0/board',
            params=params,
            data_key='values',
            max_results=max_results
        ))

    def fetch_sprints(self, board_id, max_results: int = 1000) -> List[Dict]:
        """Fetch all sprints of a board."""
        return list(self._paginate(
            f'agile/1.0/board/{board_id}/sprint',
            data_key='values',
            max_results=max_results
        ))

    # ========================================
    # Issue Methods
    # ========================================

    def fetch_issues(
        self,
        jql: str,
        max_results: int = 100,
        expand: List[str] = None,
        fields: List[str] = None
    ) -> List[Dict]:
        """
        Fetch every issue matching a JQL query.

        Uses GET /rest/api/2/search/jql with nextPageToken pagination and
        materializes all pages before returning.

        Args:
            jql: JQL query string
            max_results: Results per page
            expand: Entities to expand (e.g. ['changelog'])
            fields: Fields to include (default: all)

        Returns:
            List of issue dictionaries
        """
        jql = jql.replace('\n', ' ').strip()
        logger.info(f"Fetching issues with JQL: {jql[:100]}")

        params = {
            'jql': jql,
            'fields': ','.join(fields) if fields else '*all'
        }
        if expand:
            params['expand'] = ','.join(expand)

        return list(self._paginate(
            'api/2/search/jql',
            params=params,
            data_key='issues',
            max_results=max_results,
            pagination_strategy='cursor'
        ))

    # ========================================
    # Utility Methods
    # ========================================

    def test_connection(self) -> bool:
        """Test connection to Jira API."""
        try:
            self._make_request('GET', 'api/2/myself')
            logger.info("Jira connection test successful")
            return True
        except JiraAPIError as e:
            logger.error(f"Jira connection test failed: {e.message}")
            return False

    def get_server_info(self) -> Dict:
        """Get Jira server information."""
        return self._make_request('GET', 'api/2/serverInfo')
