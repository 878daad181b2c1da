from abc import ABC, abstractmethod
from typing import Any

from app.services.sync_types import FixtureData, LeagueData, PlayerData, StandingRow, TeamData


class ProviderError(Exception):
    """Upstream call failed: network error, non-2xx status, or an error block in the body.

    payload carries the provider's raw error block (or response body) so the
    sync caller can hand it back untouched.
    """

    def __init__(self, message: str, *, payload: Any = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.payload = payload
        self.status_code = status_code


class ProviderConfigError(ProviderError):
    """Provider cannot be called at all (missing key or base URL)."""


class SportsDataProvider(ABC):
    """Abstract base class for football data providers.

    All methods return the normalized shapes from app.services.sync_types and
    raise ProviderError on failure. An empty list means the provider answered
    with zero rows.
    """

    name: str = "provider"

    @abstractmethod
    def ensure_configured(self) -> None:
        """Raise ProviderConfigError if the provider lacks credentials."""
        ...

    @abstractmethod
    async def get_league(self, league_external_id: str, season: int) -> LeagueData | None:
        ...

    @abstractmethod
    async def get_teams(self, league_external_id: str, season: int) -> list[TeamData]:
        ...

    @abstractmethod
    async def get_fixtures(self, league_external_id: str, season: int) -> list[FixtureData]:
        """Fetch past and upcoming fixtures for a league season, unique by external_id."""
        ...

    @abstractmethod
    async def get_fixture_details(self, fixture_external_id: str) -> FixtureData | None:
        ...

    @abstractmethod
    async def get_squad(self, team_external_id: str) -> list[PlayerData]:
        ...

    @abstractmethod
    async def get_standings(self, league_external_id: str, season: int) -> list[StandingRow]:
        ...

    @abstractmethod
    async def test_connection(self) -> dict[str, Any]:
        ...

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        return None
