import logging

from database import DatabaseAdapter
from exceptions import NotFoundError, WarTrackerError
from .results import ServiceResult
from .utils.validators import sanitize_tag

logger = logging.getLogger(__name__)


class ClanService:
    """Clan registration and the per-run refresh of name / war trophies"""

    def __init__(self, db: DatabaseAdapter, client):
        self.db = db
        self.client = client

    async def add_clan(self, clan_tag: str) -> ServiceResult:
        """
        Look the clan up in the API and start tracking it.
        Returns a failure result if the clan is already tracked.
        """
        try:
            tag = sanitize_tag(clan_tag)
            if await self.db.get_clan(tag):
                logger.info(f"Clan {tag} already exists")
                return ServiceResult.failure(f"Clan with tag '{tag}' already exists.")

            info = await self.client.get_clan(tag)
            clan = await self.db.add_clan(info.tag, info.name, info.war_trophies)
            if clan is None:
                return ServiceResult.failure(f"Clan with tag '{tag}' already exists.")

            logger.info(f"Added clan {clan.name} ({clan.tag}) with {clan.war_trophies} war trophies")
            return ServiceResult.successful(f"Clan {clan.name} added successfully.", clan)

        except NotFoundError:
            logger.warning(f"Clan {clan_tag} not found in API")
            return ServiceResult.failure(f"Clan with tag '{clan_tag}' not found.")
        except WarTrackerError as e:
            logger.warning(f"Could not add clan {clan_tag}: {e}")
            return ServiceResult.failure(f"Could not add clan: {e}")
        except Exception as e:
            logger.error(f"Unexpected error adding clan {clan_tag}: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")

    async def update_clan(self, clan_tag: str) -> ServiceResult:
        """Overwrite the stored name and current war trophies from the API"""
        try:
            tag = sanitize_tag(clan_tag)
            info = await self.client.get_clan(tag)
            clan = await self.db.update_clan(tag, info.name, info.war_trophies)
            if clan is None:
                return ServiceResult.failure(f"Clan '{tag}' is not tracked.")

            logger.info(f"Updated clan {clan.name} ({tag}): {clan.war_trophies} war trophies")
            return ServiceResult.successful(f"Clan {clan.name} updated successfully.", clan)

        except NotFoundError:
            logger.warning(f"Clan {clan_tag} not found in API")
            return ServiceResult.failure(f"Clan '{clan_tag}' not found in API.")
        except WarTrackerError as e:
            logger.warning(f"Failed to update clan {clan_tag}: {e}")
            return ServiceResult.failure(f"Failed to update clan: {e}")
        except Exception as e:
            logger.error(f"Unexpected error updating clan {clan_tag}: {e}", exc_info=True)
            return ServiceResult.failure(f"An error occurred: {e}")

    async def delete_clan(self, clan_tag: str) -> ServiceResult:
        tag = sanitize_tag(clan_tag)
        if await self.db.delete_clan(tag):
            logger.info(f"Deleted clan {tag}")
            return ServiceResult.successful(f"Clan '{tag}' deleted.")
        return ServiceResult.failure(f"Clan '{tag}' not found.")

    async def list_clans(self):
        return await self.db.get_all_clans()

    async def get_clan(self, clan_tag: str):
        return await self.db.get_clan(sanitize_tag(clan_tag))
