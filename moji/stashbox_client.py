"""
Stash-Box GraphQL Client

Client for querying stash-box endpoints (JAVStash, StashDB, FansDB, etc.).

Every request carries the endpoint's API key and goes through a per-client
token-bucket limiter built from max_requests_per_minute, so one client never
sends more than its budget regardless of how many tasks share it.
"""

import asyncio
import logging
from typing import Optional

import httpx

from moji.graphql_client import GraphQLClient
from moji.rate_limiter import RateLimiter
from moji.transports import build_transport

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://javstash.org/graphql"

# Fragment with all performer fields used by the performer queries
PERFORMER_FIELDS = """
    id
    name
    disambiguation
    aliases
    gender
    birth_date
    death_date
    ethnicity
    country
    eye_color
    hair_color
    height
    cup_size
    band_size
    waist_size
    hip_size
    breast_type
    career_start_year
    career_end_year
    tattoos { location description }
    piercings { location description }
    urls { url site { name } }
    images { id url width height }
    is_favorite
    deleted
    merged_into_id
    created
    updated
"""


class StashBoxClient(GraphQLClient):
    """
    Client for querying stash-box GraphQL endpoints.

    Defaults to JAVStash; any stash-box compatible server works.
    """

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        max_requests_per_minute: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initialize the stash-box client.

        Args:
            api_key: API key sent in the ApiKey header of every request
            endpoint: The GraphQL URL (e.g. "https://stashdb.org/graphql")
            max_requests_per_minute: Request budget. None or non-positive
                values keep the default of 240/min.
            transport: Underlying httpx transport (mainly for testing)
            rate_limiter: Limiter to share with other clients; overrides
                max_requests_per_minute.
        """
        self.rate_limiter = rate_limiter or RateLimiter.from_requests_per_minute(
            max_requests_per_minute
        )
        super().__init__(
            endpoint,
            build_transport(api_key, transport=transport, limiter=self.rate_limiter),
        )

    async def me(self, cancel: Optional[asyncio.Event] = None) -> dict:
        """Get the user that owns the API key."""
        query = """
        query Me {
            me {
                id
                name
                roles
            }
        }
        """
        data = await self._execute(query, operation_name="Me", cancel=cancel)
        return data.get("me")

    async def get_version(self, cancel: Optional[asyncio.Event] = None) -> dict:
        """Get the stash-box server version."""
        query = """
        query GetVersion {
            version {
                version
                hash
                build_time
                build_type
            }
        }
        """
        data = await self._execute(query, operation_name="GetVersion", cancel=cancel)
        return data.get("version")

    async def find_performer(
        self, performer_id: str, cancel: Optional[asyncio.Event] = None
    ) -> Optional[dict]:
        """
        Get a single performer by ID from the stash-box endpoint.

        Args:
            performer_id: The stash-box performer UUID

        Returns:
            Performer dict if found, None otherwise
        """
        query = f"""
        query FindPerformer($id: ID!) {{
            findPerformer(id: $id) {{
                {PERFORMER_FIELDS}
            }}
        }}
        """

        data = await self._execute(
            query, variables={"id": performer_id}, operation_name="FindPerformer", cancel=cancel
        )
        return data.get("findPerformer")

    async def search_performer(
        self, term: str, cancel: Optional[asyncio.Event] = None
    ) -> list[dict]:
        """Full-text performer search by name or alias."""
        query = f"""
        query SearchPerformer($term: String!) {{
            searchPerformer(term: $term) {{
                {PERFORMER_FIELDS}
            }}
        }}
        """

        data = await self._execute(
            query, variables={"term": term}, operation_name="SearchPerformer", cancel=cancel
        )
        return data.get("searchPerformer") or []

    async def query_performers(
        self,
        page: int = 1,
        per_page: int = 25,
        sort: str = "UPDATED_AT",
        direction: str = "DESC",
        cancel: Optional[asyncio.Event] = None,
        **filters,
    ) -> tuple[list[dict], int]:
        """
        Query performers from the stash-box endpoint.

        Args:
            page: Page number (1-indexed)
            per_page: Number of results per page
            sort: PerformerSortEnum value (default: UPDATED_AT)
            direction: ASC or DESC
            **filters: Extra PerformerQueryInput fields (e.g. name="...",
                gender="FEMALE")

        Returns:
            Tuple of (performers list, total count)
        """
        query = f"""
        query QueryPerformers($input: PerformerQueryInput!) {{
            queryPerformers(input: $input) {{
                count
                performers {{
                    {PERFORMER_FIELDS}
                }}
            }}
        }}
        """

        variables = {
            "input": {
                **filters,
                "page": page,
                "per_page": per_page,
                "sort": sort,
                "direction": direction,
            }
        }

        data = await self._execute(
            query, variables=variables, operation_name="QueryPerformers", cancel=cancel
        )
        result = data.get("queryPerformers") or {}
        return result.get("performers") or [], result.get("count") or 0
