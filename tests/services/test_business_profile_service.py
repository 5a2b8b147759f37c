"""Tests for BusinessProfileService: opening hours and social links."""

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pagegen.core.exceptions import NotFoundError
from pagegen.models.business import Business
from pagegen.models.business_profile import BusinessHours, SocialPlatform
from pagegen.schemas.business_profile import BusinessHoursUpdate, SocialLinkCreate
from pagegen.services.business import BusinessService
from pagegen.services.business_profile import BusinessProfileService


@pytest.fixture
def service(db_session: AsyncSession) -> BusinessProfileService:
    return BusinessProfileService(db_session)


def hours(*entries: dict) -> BusinessHoursUpdate:
    return BusinessHoursUpdate(hours=list(entries))


class TestHours:
    async def test_new_business_has_no_hours(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        assert await service.list_hours(business.id) == []

    async def test_saved_hours_come_back_monday_first(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        update = hours(
            {"day_of_week": "Sunday", "is_closed": True},
            {"day_of_week": "Wednesday", "opens": "08:00", "closes": "17:00"},
            {"day_of_week": "Monday", "opens": "07:30", "closes": "18:00"},
        )

        saved = await service.save_hours(business.id, update.hours)

        assert [row.day_of_week for row in saved] == ["Monday", "Wednesday", "Sunday"]
        assert (saved[0].opens, saved[0].closes) == ("07:30", "18:00")
        assert saved[2].is_closed is True

    async def test_saving_a_day_again_replaces_it(
        self,
        db_session: AsyncSession,
        service: BusinessProfileService,
        business: Business,
    ) -> None:
        await service.save_hours(
            business.id,
            hours({"day_of_week": "Friday", "opens": "08:00", "closes": "17:00"}).hours,
        )

        saved = await service.save_hours(
            business.id, hours({"day_of_week": "Friday", "is_closed": True}).hours
        )

        assert len(saved) == 1
        assert saved[0].is_closed is True
        assert saved[0].opens is None
        count = await db_session.scalar(
            select(func.count()).select_from(BusinessHours).where(
                BusinessHours.business_id == business.id
            )
        )
        assert count == 1

    async def test_unlisted_days_are_kept(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        await service.save_hours(
            business.id, hours({"day_of_week": "Monday", "opens": "09:00"}).hours
        )

        saved = await service.save_hours(
            business.id, hours({"day_of_week": "Tuesday", "opens": "10:00"}).hours
        )

        assert [row.day_of_week for row in saved] == ["Monday", "Tuesday"]

    def test_duplicate_days_are_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            hours({"day_of_week": "Monday"}, {"day_of_week": "Monday", "is_closed": True})

    def test_times_must_be_hh_mm(self) -> None:
        with pytest.raises(PydanticValidationError):
            hours({"day_of_week": "Monday", "opens": "9am"})

    async def test_missing_business(self, service: BusinessProfileService) -> None:
        with pytest.raises(NotFoundError):
            await service.list_hours("missing")

    async def test_hours_go_with_the_business(
        self,
        db_session: AsyncSession,
        service: BusinessProfileService,
        business: Business,
    ) -> None:
        await service.save_hours(
            business.id, hours({"day_of_week": "Monday", "opens": "09:00"}).hours
        )
        await BusinessService(db_session).delete_business(business.id)

        count = await db_session.scalar(select(func.count()).select_from(BusinessHours))
        assert count == 0


class TestSocialLinks:
    async def test_links_are_ordered_by_platform(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        await service.save_social_link(
            business.id,
            SocialLinkCreate(platform="yelp", url="https://www.yelp.com/biz/acme-plumbing"),
        )
        await service.save_social_link(
            business.id,
            SocialLinkCreate(platform="facebook", url="https://facebook.com/acmeplumbing"),
        )

        links = await service.list_social_links(business.id)

        assert [link.platform for link in links] == ["facebook", "yelp"]

    async def test_saving_a_platform_again_replaces_the_url(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        first = await service.save_social_link(
            business.id,
            SocialLinkCreate(platform="instagram", url="https://instagram.com/acme"),
        )

        second = await service.save_social_link(
            business.id,
            SocialLinkCreate(platform="instagram", url="https://instagram.com/acme_plumbing"),
        )

        assert second.id == first.id
        assert second.url == "https://instagram.com/acme_plumbing"
        assert len(await service.list_social_links(business.id)) == 1

    def test_invalid_url_is_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            SocialLinkCreate(platform="facebook", url="not a url")

    def test_unknown_platform_is_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            SocialLinkCreate(platform="myspace", url="https://myspace.com/acme")

    async def test_delete_link(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        await service.save_social_link(
            business.id,
            SocialLinkCreate(platform="youtube", url="https://youtube.com/@acme"),
        )

        await service.delete_social_link(business.id, SocialPlatform.YOUTUBE)

        assert await service.list_social_links(business.id) == []

    async def test_delete_missing_link(
        self, service: BusinessProfileService, business: Business
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await service.delete_social_link(business.id, SocialPlatform.TIKTOK)

        assert exc_info.value.message == "SocialLink not found: tiktok"
