"""
Unit tests for SupabaseListStore

Tests:
- Select string building with relation embedding
- Filter chaining (eq/gte/lte/or)
- Ordering and row caps
- CRUD calls and error translation
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, call, patch

import pytest

from helpdesk.exceptions import ListStoreError
from helpdesk.models.schemas import TicketQuery
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.services.list_store import AnyOf, FilterClause, ListQuery, Op
from helpdesk.services.supabase_store import SupabaseListStore, apply_filters, or_condition


@pytest.fixture
def supabase_store(mock_supabase):
    return SupabaseListStore(supabase_client=mock_supabase)


class TestInitialization:

    def test_init_with_client(self, mock_supabase):
        store = SupabaseListStore(supabase_client=mock_supabase)
        assert store.client == mock_supabase

    def test_init_default_client(self):
        with patch("supabase.create_client") as create_client:
            store = SupabaseListStore()
            assert store.client == create_client.return_value


class TestBuildSelect:

    def test_plain_columns(self, supabase_store):
        assert supabase_store.build_select(("id", "title")) == "id,title"

    def test_empty_select_is_star(self, supabase_store):
        assert supabase_store.build_select() == "*"

    def test_relation_sub_fields(self, supabase_store):
        select = supabase_store.build_select(
            ("id", "requester/title", "requester/email"), ("requester", "category")
        )
        assert select == (
            "id,requester:people!requester_id(title,email),"
            "category:categories!category_id(*)"
        )

    def test_unknown_relation(self, supabase_store):
        with pytest.raises(ListStoreError):
            supabase_store.build_select(("owner/title",))


class TestFilters:

    def test_equality_and_ranges(self, mock_supabase):
        start = datetime(2024, 3, 1, tzinfo=timezone.utc)
        apply_filters(mock_supabase, (
            FilterClause("status", Op.EQ, "Approved"),
            FilterClause("created", Op.GE, start),
            FilterClause("created", Op.LE, start),
        ))

        mock_supabase.eq.assert_called_once_with("status", "Approved")
        mock_supabase.gte.assert_called_once_with("created", "2024-03-01T00:00:00.000Z")
        mock_supabase.lte.assert_called_once_with("created", "2024-03-01T00:00:00.000Z")

    def test_text_group_uses_or(self, mock_supabase):
        apply_filters(mock_supabase, (AnyOf((
            FilterClause("title", Op.CONTAINS, "router"),
            FilterClause("description", Op.CONTAINS, "router"),
        )),))

        mock_supabase.or_.assert_called_once_with(
            'title.ilike."*router*",description.ilike."*router*"'
        )

    def test_like_wildcards_are_escaped(self):
        clause = FilterClause("title", Op.CONTAINS, '50%_"off"')
        assert or_condition(clause) == 'title.ilike."*50\\\\%\\\\_\\"off\\"*"'


class TestListItems:

    @pytest.mark.asyncio
    async def test_order_and_range(self, supabase_store, mock_supabase):
        mock_supabase.execute.side_effect = [
            MagicMock(data=[{"id": 1}, {"id": 2}]),
            MagicMock(data=[]),
        ]

        rows = await supabase_store.list_items("Tickets", ListQuery(
            select=("id",),
            filters=(FilterClause("status", Op.EQ, "Approved"),),
            order_by="created",
            ascending=False,
            top=20,
        ))

        assert rows == [{"id": 1}, {"id": 2}]
        mock_supabase.table.assert_called_with("tickets")
        mock_supabase.order.assert_called_with("created", desc=True)
        assert mock_supabase.range.call_args_list == [call(0, 19), call(2, 19)]

    @pytest.mark.asyncio
    async def test_table_name_override(self, mock_supabase):
        store = SupabaseListStore(supabase_client=mock_supabase, table_names={"Tickets": "helpdesk_tickets"})

        await store.list_items("Tickets", ListQuery())

        mock_supabase.table.assert_called_with("helpdesk_tickets")
        mock_supabase.order.assert_not_called()
        mock_supabase.range.assert_called_once_with(0, 999)

    @pytest.mark.asyncio
    async def test_client_errors_become_list_store_errors(self, supabase_store, mock_supabase):
        mock_supabase.execute.side_effect = RuntimeError("connection reset")

        with pytest.raises(ListStoreError, match="connection reset"):
            await supabase_store.list_items("Tickets", ListQuery())


class TestServerRowCap:
    """Server returns at most 1000 rows per request, like PostgREST max-rows"""

    SERVER_MAX_ROWS = 1000
    TABLE_ROWS = 6500

    @pytest.fixture
    def capped_supabase(self, mock_supabase):
        def execute():
            start, end = mock_supabase.range.call_args.args
            count = max(0, min(end - start + 1, self.SERVER_MAX_ROWS, self.TABLE_ROWS - start))
            return MagicMock(data=[{"id": start + i + 1} for i in range(count)])

        mock_supabase.execute.side_effect = execute
        return mock_supabase

    @pytest.mark.asyncio
    async def test_reads_past_server_cap(self, capped_supabase):
        store = SupabaseListStore(supabase_client=capped_supabase)

        rows = await store.list_items("Tickets", ListQuery(select=("id",), top=5000))

        assert len(rows) == 5000
        assert rows[-1] == {"id": 5000}
        assert capped_supabase.range.call_count == 5

    @pytest.mark.asyncio
    async def test_short_chunk_does_not_end_read(self, capped_supabase):
        store = SupabaseListStore(supabase_client=capped_supabase, chunk_rows=2000)

        rows = await store.list_items("Tickets", ListQuery(select=("id",), top=5000))

        assert len(rows) == 5000
        assert capped_supabase.range.call_args_list[:2] == [call(0, 1999), call(1000, 2999)]

    @pytest.mark.asyncio
    async def test_unbounded_read_stops_when_rows_run_out(self, capped_supabase):
        store = SupabaseListStore(supabase_client=capped_supabase)

        rows = await store.list_items("Tickets", ListQuery(select=("id",)))

        assert len(rows) == self.TABLE_ROWS

    @pytest.mark.asyncio
    async def test_search_total_reaches_ceiling(self, capped_supabase):
        repo = TicketRepository(SupabaseListStore(supabase_client=capped_supabase))

        result = await repo.search(TicketQuery())

        assert result.total == 5000
        assert result.total_capped is True


class TestItemOperations:

    @pytest.mark.asyncio
    async def test_get_item(self, supabase_store, mock_supabase):
        mock_supabase.execute.return_value.data = [{"id": 5, "title": "VPN"}]

        record = await supabase_store.get_item("Tickets", 5, select=("id", "title"))

        assert record == {"id": 5, "title": "VPN"}
        mock_supabase.eq.assert_called_with("id", 5)

    @pytest.mark.asyncio
    async def test_get_missing_item(self, supabase_store):
        with pytest.raises(ListStoreError) as exc_info:
            await supabase_store.get_item("Tickets", 5)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_add_item(self, supabase_store, mock_supabase):
        mock_supabase.execute.return_value.data = [{"id": 11, "title": "New"}]

        record = await supabase_store.add_item("Tickets", {"title": "New"})

        assert record["id"] == 11
        mock_supabase.insert.assert_called_once_with({"title": "New"})

    @pytest.mark.asyncio
    async def test_update_missing_item(self, supabase_store, mock_supabase):
        with pytest.raises(ListStoreError) as exc_info:
            await supabase_store.update_item("Tickets", 9, {"status": "Submitted"})

        assert exc_info.value.status_code == 404
        mock_supabase.update.assert_called_once_with({"status": "Submitted"})

    @pytest.mark.asyncio
    async def test_delete_item(self, supabase_store, mock_supabase):
        await supabase_store.delete_item("Tickets", 9)

        mock_supabase.delete.assert_called_once()
        mock_supabase.eq.assert_called_with("id", 9)
