# query_builders/base_builder.py

from abc import ABC, abstractmethod
from typing import Tuple, Dict, Optional


class BaseQueryBuilder(ABC):
    """
    Events DB fetch queries bounded by a block window.

    from_block = 0 replays the full history; incremental runs pass the block
    after the pipeline checkpoint.
    """

    @abstractmethod
    def build_fetch_query(
        self, from_block: int, up_to_block: Optional[int] = None
    ) -> Tuple[str, Dict]:
        """
        Returns:
            Tuple of (SQL query string, parameters dict)
        """
        pass

    @abstractmethod
    def get_column_names(self) -> list:
        """Column names of the fetch query, in select order"""
        pass

    @staticmethod
    def block_range_filter(
        from_block: int, up_to_block: Optional[int] = None
    ) -> Tuple[str, Dict]:
        clause = "block_number >= :from_block"
        params = {"from_block": from_block}
        if up_to_block is not None:
            clause += " AND block_number <= :up_to_block"
            params["up_to_block"] = up_to_block
        return clause, params
