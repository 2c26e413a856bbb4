"""Client for interacting with a local Stash instance.

Requests carry the ApiKey header but are not rate limited; Stash runs
next to us and has no request budget to protect.
"""
from typing import Optional

import httpx

from moji.graphql_client import GraphQLClient
from moji.transports import ApiKeyTransport

PERFORMER_FIELDS = """
    id
    name
    disambiguation
    alias_list
    gender
    birthdate
    country
    ethnicity
    image_path
    scene_count
    image_count
    gallery_count
    favorite
    stash_ids {
        endpoint
        stash_id
    }
"""


class StashClient(GraphQLClient):
    """Client for the local Stash GraphQL API."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = url.rstrip("/")
        super().__init__(
            f"{self.base_url}/graphql",
            ApiKeyTransport(transport or httpx.AsyncHTTPTransport(), api_key),
            timeout=60.0,
        )

    async def get_version(self) -> dict:
        """Get the Stash server version."""
        query = """
        query GetVersion {
            version {
                version
                hash
                build_time
            }
        }
        """
        data = await self._execute(query, operation_name="GetVersion")
        return data.get("version")

    async def find_performer(self, performer_id: str) -> Optional[dict]:
        """Get a single performer by local ID, or None."""
        query = f"""
        query FindPerformer($id: ID!) {{
            findPerformer(id: $id) {{
                {PERFORMER_FIELDS}
            }}
        }}
        """
        data = await self._execute(
            query, variables={"id": performer_id}, operation_name="FindPerformer"
        )
        return data.get("findPerformer")

    async def all_performers(self) -> list[dict]:
        """Fetch every performer in the library."""
        query = f"""
        query AllPerformers {{
            findPerformers(filter: {{ per_page: -1 }}) {{
                performers {{
                    {PERFORMER_FIELDS}
                }}
            }}
        }}
        """
        data = await self._execute(query, operation_name="AllPerformers")
        return (data.get("findPerformers") or {}).get("performers") or []

    async def get_stashbox_connections(self) -> list[dict]:
        """Get configured stash-box connections."""
        query = """
        query StashBoxConnections {
          configuration {
            general {
              stashBoxes {
                endpoint
                api_key
                name
                max_requests_per_minute
              }
            }
          }
        }
        """
        data = await self._execute(query, operation_name="StashBoxConnections")
        general = (data.get("configuration") or {}).get("general") or {}
        return general.get("stashBoxes") or []
