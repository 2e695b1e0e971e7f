"""
Unit tests for sync administration.
"""

import datetime as dt

import pytest

from ar_admin.models.sync import SyncConfig, SyncCredentials
from ar_admin.services.sync import (
    END_OF_DAY,
    SyncService,
    _to_utc_iso,
    resolve_date_range,
)

# Wednesday
NOW = dt.datetime(2024, 5, 15, 14, 30)


def day(d, t=dt.time.min):
    return dt.datetime.combine(d, t)


class TestResolveDateRange:
    """Test cases for named date ranges."""

    def test_last_week_runs_sunday_to_saturday(self):
        first, last = resolve_date_range("last_week", now=NOW)

        assert first == day(dt.date(2024, 5, 5))
        assert last == day(dt.date(2024, 5, 11), END_OF_DAY)

    def test_this_week_ends_today(self):
        first, last = resolve_date_range("this_week", now=NOW)

        assert first == day(dt.date(2024, 5, 12))
        assert last == day(dt.date(2024, 5, 15), END_OF_DAY)

    def test_this_week_on_sunday_starts_today(self):
        first, _ = resolve_date_range("this_week", now=dt.datetime(2024, 5, 12, 9))

        assert first == day(dt.date(2024, 5, 12))

    def test_last_month(self):
        first, last = resolve_date_range("last_month", now=NOW)

        assert first == day(dt.date(2024, 4, 1))
        assert last == day(dt.date(2024, 4, 30), END_OF_DAY)

    def test_last_month_in_january(self):
        first, last = resolve_date_range("last_month", now=dt.datetime(2024, 1, 3))

        assert first.date() == dt.date(2023, 12, 1)
        assert last.date() == dt.date(2023, 12, 31)

    def test_this_month(self):
        first, last = resolve_date_range("this_month", now=NOW)

        assert first == day(dt.date(2024, 5, 1))
        assert last.date() == dt.date(2024, 5, 15)

    @pytest.mark.parametrize(
        "range_type,first_day",
        [
            ("last_30_days", dt.date(2024, 4, 15)),
            ("last_90_days", dt.date(2024, 2, 15)),
        ],
    )
    def test_last_n_days(self, range_type, first_day):
        first, last = resolve_date_range(range_type, now=NOW)

        assert first == day(first_day)
        assert last == day(NOW.date(), END_OF_DAY)

    def test_custom_range_includes_last_day(self):
        first, last = resolve_date_range(
            "custom", start=dt.date(2024, 3, 1), end=dt.date(2024, 3, 31)
        )

        assert first == day(dt.date(2024, 3, 1))
        assert last == dt.datetime(2024, 3, 31, 23, 59, 59)

    def test_custom_range_requires_both_dates(self):
        with pytest.raises(ValueError, match="both start and end"):
            resolve_date_range("custom", start=dt.date(2024, 3, 1))

    def test_custom_range_must_be_ordered(self):
        with pytest.raises(ValueError, match="on or after"):
            resolve_date_range(
                "custom", start=dt.date(2024, 3, 2), end=dt.date(2024, 3, 1)
            )

    def test_unknown_range(self):
        with pytest.raises(ValueError):
            resolve_date_range("yesterday")

    def test_utc_iso_format(self):
        """Test timestamps are sent as UTC with milliseconds."""
        value = dt.datetime(2024, 5, 1, 2, 0, tzinfo=dt.timezone(dt.timedelta(hours=2)))

        assert _to_utc_iso(value) == "2024-05-01T00:00:00.000Z"


class TestSyncService:
    """Test cases for SyncService."""

    @pytest.fixture
    def service(self, mock_client, mock_functions):
        return SyncService(mock_client, mock_functions)

    def test_statuses(self, service, mock_client, query_factory):
        mock_client.table.return_value = query_factory(
            [{"id": "s1", "entity_type": "invoice", "status": "success"}]
        )

        statuses = service.statuses()

        assert statuses[0].entity_type == "invoice"
        assert statuses[0].sync_interval_minutes == 5

    def test_logs_page(self, service, mock_client, query_factory):
        """Test paging uses offsets and the exact count."""
        query = query_factory(
            [{"id": "l1", "entity_type": "payment", "status": "success"}], count=120
        )
        mock_client.table.return_value = query

        page = service.logs(page=3, per_page=50)

        query.select.assert_called_once_with("*", count="exact")
        query.range.assert_called_once_with(100, 149)
        assert page.total == 120
        assert page.pages == 3
        assert len(page.rows) == 1

    def test_logs_rejects_bad_page(self, service):
        with pytest.raises(ValueError):
            service.logs(page=0)

    def test_change_logs_filter(self, service, mock_client, query_factory):
        query = query_factory([])
        mock_client.table.return_value = query

        service.change_logs(limit=20, sync_type="invoice")

        query.eq.assert_called_once_with("sync_type", "invoice")
        query.limit.assert_called_once_with(20)

    def test_scheduler_logs(self, service, mock_client, query_factory):
        mock_client.table.return_value = query_factory(
            [{"id": "e1", "emails_sent": 4, "emails_failed": 1}]
        )

        logs = service.scheduler_logs()

        assert logs[0].emails_sent == 4

    def test_run_master_sync(self, service, mock_functions):
        """Test master sync totals come from the summary block."""
        mock_functions.invoke.return_value = {
            "success": True,
            "summary": {"totalCreated": 3, "totalUpdated": 7, "totalFetched": 40},
        }

        run = service.run_master_sync()

        mock_functions.invoke.assert_called_once_with(
            "acumatica-master-sync", {}, use_anon_key=True
        )
        assert (run.created, run.updated, run.fetched) == (3, 7, 40)

    def test_run_entity_sync(self, service, mock_functions):
        mock_functions.invoke.return_value = {"created": 1, "updated": 2}

        run = service.run_entity_sync("customer")

        assert mock_functions.invoke.call_args.args[0] == (
            "acumatica-customer-incremental-sync"
        )
        assert run.updated == 2
        assert run.fetched == 0

    def test_run_entity_sync_rejects_unknown_entity(self, service):
        with pytest.raises(ValueError):
            service.run_entity_sync("vendor")

    def test_sync_payment_links(self, service, mock_functions):
        mock_functions.invoke.return_value = {
            "total_links_created": 12,
            "total_payments_processed": 30,
        }

        assert service.sync_payment_links() == {
            "links_created": 12,
            "payments_processed": 30,
        }

    def test_run_date_range_sync(self, service, mock_functions):
        """Test the range is sent as UTC timestamps."""
        service.run_date_range_sync(
            "invoice", "custom", start=dt.date(2024, 3, 1), end=dt.date(2024, 3, 2)
        )

        name, payload = mock_functions.invoke.call_args.args
        assert name == "acumatica-invoice-date-range-sync"
        assert payload["startDate"].endswith("Z")
        assert payload["endDate"].endswith(".000Z")

    def test_save_configs(self, service, mock_client, query_factory):
        """Test each config is written to its own row."""
        query = query_factory()
        mock_client.table.return_value = query
        configs = [
            SyncConfig(
                id="s1",
                entity_type="invoice",
                sync_enabled=False,
                sync_interval_minutes=15,
                lookback_minutes=30,
            )
        ]

        saved = service.save_configs(configs, now=dt.datetime(2024, 5, 1))

        assert saved == 1
        values = query.update.call_args.args[0]
        assert values["sync_enabled"] is False
        assert values["sync_interval_minutes"] == 15
        assert values["updated_at"] == "2024-05-01T00:00:00"
        query.eq.assert_called_with("id", "s1")

    def test_save_credentials_deactivates_previous(
        self, service, mock_client, query_factory
    ):
        """Test saving credentials switches the active row."""
        current = {
            "id": "c1",
            "acumatica_url": "https://old.example.com",
            "username": "old",
            "password": "pw",
            "is_active": True,
        }
        lookup = query_factory(current)
        writes = query_factory({**current, "id": "c2", "username": "new"})
        mock_client.table.side_effect = [lookup, writes, writes]

        saved = service.save_credentials(
            SyncCredentials(
                acumatica_url="https://new.example.com", username="new", password="x"
            )
        )

        writes.update.assert_called_once_with({"is_active": False})
        inserted = writes.insert.call_args.args[0]
        assert inserted["is_active"] is True
        assert "id" not in inserted
        assert saved.username == "new"

    def test_save_credentials_stores_project_url_and_anon_key(
        self, service, mock_client, query_factory
    ):
        """Test the scheduled sync trigger can find the new active row."""
        writes = query_factory({"id": "c2"})
        mock_client.table.side_effect = [query_factory(None), writes]

        service.save_credentials(
            SyncCredentials(
                acumatica_url="https://erp.example.com",
                username="ops",
                password="x",
                supabase_url="https://test-project.supabase.co",
                supabase_anon_key="anon-key",
            )
        )

        inserted = writes.insert.call_args.args[0]
        assert inserted["supabase_url"] == "https://test-project.supabase.co"
        assert inserted["supabase_anon_key"] == "anon-key"
        assert inserted["is_active"] is True
        writes.update.assert_not_called()

    def test_active_credentials_none(self, service, mock_client, query_factory):
        mock_client.table.return_value = query_factory(None)

        assert service.active_credentials() is None
