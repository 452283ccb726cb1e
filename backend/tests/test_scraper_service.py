"""Tests for scrape orchestration, retries and scheduling."""

import asyncio
import json
from typing import List, Union

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from itemshop.config import settings
from itemshop.core.exceptions import EmptyCatalogError, ScrapeInProgressError
from itemshop.scrapers.base import BaseScraperAdapter, PageSnapshot
from itemshop.scrapers.scheduler import SCRAPE_JOB_ID, ScrapeScheduler
from itemshop.scrapers.scraper_service import ScraperService
from itemshop.scrapers.utils.rate_limiter import DomainRateLimiter
from itemshop.services.catalog_store import CatalogStore


class ScriptedAdapter(BaseScraperAdapter):
    """Adapter that replays a fixed sequence of snapshots and errors."""

    source_slug = "item-shop"

    def __init__(self, outcomes: List[Union[PageSnapshot, Exception]]):
        super().__init__()
        self.outcomes = list(outcomes)
        self.calls = 0
        self.release = None

    async def fetch_snapshot(self) -> PageSnapshot:
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def good_page(make_page, make_section, make_tile, make_state, make_entry, scraped_at):
    html = make_page(
        make_section("featured", "Destacados", [make_tile("Cool Skin", 1500), make_tile("Glider", 800)]),
    )
    state = make_state(make_entry("X1", "Cool Skin", 1500))
    return PageSnapshot(html=html, state=state, url="https://www.fortnite.com/item-shop", fetched_at=scraped_at)


@pytest.fixture
def empty_page():
    return PageSnapshot(html="<html><body></body></html>", state=None, url="https://www.fortnite.com/item-shop")


@pytest.fixture
def store(tmp_path) -> CatalogStore:
    return CatalogStore(str(tmp_path / "snapshot.json"))


def _service(store, outcomes, retries=3) -> ScraperService:
    return ScraperService(store, adapter=ScriptedAdapter(outcomes), retries=retries, retry_delay_seconds=0)


# ============================================================================
# TESTS: SCRAPER SERVICE
# ============================================================================

class TestScraperService:
    """Tests for ScraperService.run()."""

    async def test_successful_run_saves_snapshot(self, store, good_page, scraped_at):
        service = _service(store, [good_page])

        stats = await service.run()

        assert stats["products"] == 2
        assert stats["categories"] == 1
        assert stats["offer_ids"] == 1
        assert stats["matched"] == 1
        assert stats["unmatched"] == 1
        assert stats["duplicates"] == 0
        assert stats["state_entries"] == 1
        assert stats["attempts"] == 1
        assert service.last_run == stats
        assert store.last_update == scraped_at
        assert json.loads(store.path.read_text(encoding="utf-8"))["totalProducts"] == 2

    async def test_run_stats_carry_integrity_report(self, store, make_page, make_section, make_tile, make_state, make_entry):
        html = make_page(
            make_section("a", "Destacados", [make_tile("Cool Skin", 1500), make_tile("Glider", 800)]),
            make_section("b", "Diarios", [make_tile("Cool Skin Copy", 1500)]),
        )
        state = make_state(make_entry("X1", "Cool Skin", 1500), make_entry("X1", "Cool Skin Copy", 1500))
        page = PageSnapshot(html=html, state=state, url="https://www.fortnite.com/item-shop")

        stats = await _service(store, [page]).run()

        assert stats["duplicates"] == 1
        assert stats["integrity"]["total_products"] == 3
        assert stats["integrity"]["unique_offer_ids"] == 1
        assert stats["integrity"]["duplicates"] == []

    async def test_empty_catalog_is_retried(self, store, empty_page, good_page):
        service = _service(store, [empty_page, empty_page, good_page])

        stats = await service.run()

        assert stats["attempts"] == 3
        assert service.adapter.calls == 3

    async def test_browser_errors_are_retried(self, store, good_page):
        service = _service(store, [PlaywrightError("net::ERR_CONNECTION_RESET"), PlaywrightTimeoutError("slow"), good_page])

        stats = await service.run()

        assert stats["attempts"] == 3

    async def test_exhausted_retries_keep_previous_snapshot(self, store, good_page, empty_page):
        await _service(store, [good_page]).run()
        before = store.path.read_text(encoding="utf-8")

        service = _service(store, [empty_page, empty_page, empty_page])
        with pytest.raises(EmptyCatalogError):
            await service.run()

        assert service.adapter.calls == 3
        assert store.path.read_text(encoding="utf-8") == before

    async def test_unexpected_errors_are_not_retried(self, store, good_page):
        service = _service(store, [ValueError("bad parse"), good_page])

        with pytest.raises(ValueError):
            await service.run()

        assert service.adapter.calls == 1
        assert not store.has_data

    async def test_last_error_is_raised(self, store):
        service = _service(store, [PlaywrightError("first"), PlaywrightError("second")], retries=2)

        with pytest.raises(PlaywrightError, match="second"):
            await service.run()

    async def test_concurrent_run_is_rejected(self, store, good_page):
        service = _service(store, [good_page])
        service.adapter.release = asyncio.Event()

        first = asyncio.create_task(service.run())
        await asyncio.sleep(0)
        assert service.is_running

        with pytest.raises(ScrapeInProgressError):
            await service.run()

        service.adapter.release.set()
        stats = await first
        assert stats["products"] == 2
        assert not service.is_running

    def test_rate_limiter_injected(self, store, good_page):
        service = _service(store, [good_page])

        assert isinstance(service.adapter.rate_limiter, DomainRateLimiter)
        assert service.adapter.rate_limiter is service.rate_limiter

    def test_storefront_limit_from_settings(self, store, monkeypatch):
        monkeypatch.setattr(settings, "SHOP_URL", "https://www.fortnite.com/item-shop?lang=es-ES")
        monkeypatch.setattr(settings, "STOREFRONT_REQUESTS_PER_MINUTE", 30)

        service = _service(store, [])

        assert service.shop_domain == "www.fortnite.com"
        assert service.rate_limiter.get_current_rate("www.fortnite.com") == pytest.approx(30)


# ============================================================================
# TESTS: SCHEDULER
# ============================================================================

class TestScrapeScheduler:
    """Tests for the cron scheduler wrapper."""

    async def test_add_job_and_status(self, store, good_page):
        scheduler = ScrapeScheduler(_service(store, [good_page]), cron="0 0 * * *", timezone="America/Lima")
        scheduler.start()
        try:
            scheduler.add_scrape_job()
            jobs = scheduler.get_jobs_status()

            assert scheduler.is_running()
            assert list(jobs) == [SCRAPE_JOB_ID]
            assert jobs[SCRAPE_JOB_ID]["next_run"] is not None
            assert "cron" in jobs[SCRAPE_JOB_ID]["trigger"]
        finally:
            scheduler.stop()

    async def test_add_job_replaces_existing(self, store, good_page):
        scheduler = ScrapeScheduler(_service(store, [good_page]))
        scheduler.start()
        try:
            scheduler.add_scrape_job()
            scheduler.add_scrape_job()

            assert len(scheduler.get_jobs_status()) == 1
        finally:
            scheduler.stop()

    def test_invalid_cron(self, store):
        scheduler = ScrapeScheduler(_service(store, []), cron="every day")

        with pytest.raises(ValueError):
            scheduler.add_scrape_job()

    async def test_wrapper_runs_scrape(self, store, good_page):
        scheduler = ScrapeScheduler(_service(store, [good_page]))

        await scheduler._run_scrape_wrapper()

        assert store.has_data

    async def test_wrapper_swallows_errors(self, store):
        service = _service(store, [ValueError("boom")])
        scheduler = ScrapeScheduler(service)

        await scheduler._run_scrape_wrapper()

        assert service.adapter.calls == 1
        assert not store.has_data

    def test_not_running_before_start(self, store):
        scheduler = ScrapeScheduler(_service(store, []))

        assert not scheduler.is_running()
        assert scheduler.get_jobs_status() == {}
