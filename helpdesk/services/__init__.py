"""
Query engine and list-store services
"""
from .list_store import ListStore, ListQuery, FilterClause, AnyOf, Op
from .filter_compiler import CompiledQuery, compile_query, render_odata
from .query_state import QueryStateSynchronizer, UrlQueryState, decode_query, encode_query
from .sort_toggle import SortState, toggle_sort
from .supabase_store import SupabaseListStore
from .sharepoint import SharePointListStore

__all__ = [
    "ListStore",
    "ListQuery",
    "FilterClause",
    "AnyOf",
    "Op",
    "CompiledQuery",
    "compile_query",
    "render_odata",
    "QueryStateSynchronizer",
    "UrlQueryState",
    "decode_query",
    "encode_query",
    "SortState",
    "toggle_sort",
    "SupabaseListStore",
    "SharePointListStore",
]
