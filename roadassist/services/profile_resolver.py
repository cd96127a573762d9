"""
Profile resolution: principal -> (person, garage-or-None).

Fails open.  A database error is logged and comes back as a FAILED load
state rather than an exception, so the API can answer 503 while "no profile
yet" (SUCCEEDED with ``profile=None``) stays a separate outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.domain.enums import AccountKind
from roadassist.domain.loading import Loadable
from roadassist.infrastructure.models import GarageModel, ProfileModel
from roadassist.infrastructure.repositories import GarageRepository, ProfileRepository

logger = logging.getLogger(__name__)


@dataclass
class ResolvedProfile:
    profile: Optional[ProfileModel]
    garage: Optional[GarageModel] = None

    @property
    def is_garage(self) -> bool:
        return (
            self.profile is not None
            and AccountKind(self.profile.user_type) == AccountKind.GARAGE
        )

    @property
    def needs_garage_setup(self) -> bool:
        return self.is_garage and self.garage is None


class ProfileResolver:
    def __init__(self, session: AsyncSession):
        self.profiles = ProfileRepository(session)
        self.garages = GarageRepository(session)
        self.state: Loadable[ResolvedProfile] = Loadable()

    async def resolve(self, account_id: int) -> Loadable[ResolvedProfile]:
        self.state = self.state.start()
        try:
            profile = await self.profiles.get_by_user_id(account_id)
            resolved = ResolvedProfile(profile=profile)
            if resolved.is_garage:
                resolved.garage = await self.garages.get_by_profile_id(profile.id)
        except SQLAlchemyError as e:
            logger.exception("Error fetching profile for account %s", account_id)
            self.state = self.state.fail(e)
        else:
            self.state = self.state.succeed(resolved)
        return self.state
