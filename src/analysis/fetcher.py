"""Library track result fetcher.

Issues the follow-up GraphQL query for a finished analysis and returns the
parsed response untouched. Domain errors such as ``LibraryTrackNotFoundError``
come back as data; only transport failures and non-JSON bodies raise.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

LIBRARY_TRACK_QUERY = """
query LibraryTrack($libraryTrackId: ID!) {
  libraryTrack(id: $libraryTrackId) {
    ... on LibraryTrackNotFoundError {
      message
    }
    ... on LibraryTrack {
      id
      audioAnalysisV6 {
        ... on AudioAnalysisV6Finished {
          result {
            segments {
              timestamps
              genre {
                classical
                ambient
                blues
              }
              mood {
                calm
                chilled
                dark
                sexy
              }
            }
            genreTags
            moodTags
            bpmPrediction {
              value
              confidence
            }
          }
        }
      }
      similarLibraryTracks {
        ... on SimilarLibraryTracksError {
          message
        }
        ... on SimilarLibraryTrackConnection {
          edges {
            node {
              libraryTrack {
                id
              }
            }
          }
        }
      }
    }
  }
}
"""


class AnalysisFetchError(Exception):
    """Raised when the analysis API cannot be reached or returns non-JSON."""

    def __init__(self, track_id: str, message: str) -> None:
        self.track_id = track_id
        super().__init__(f"Fetching analysis for track {track_id} failed: {message}")


class AnalysisFetcher:
    """Queries the analysis API for a library track's full result."""

    def __init__(
        self,
        api_url: str,
        access_token: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    def build_request_body(self, track_id: str) -> dict[str, Any]:
        return {
            "query": LIBRARY_TRACK_QUERY,
            "variables": {"libraryTrackId": track_id},
        }

    async def fetch_analysis(self, track_id: str) -> Any:
        """POST the library track query and return the parsed JSON response."""
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self._api_url,
                    json=self.build_request_body(track_id),
                    headers=headers,
                    timeout=self._timeout,
                )
        except httpx.HTTPError as e:
            raise AnalysisFetchError(track_id, str(e) or type(e).__name__) from e

        try:
            result = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise AnalysisFetchError(
                track_id, f"non-JSON response (HTTP {resp.status_code})",
            ) from e

        logger.info("libraryTrack result for %s", track_id)
        logger.info("%s", json.dumps(result, indent=2))
        return result
