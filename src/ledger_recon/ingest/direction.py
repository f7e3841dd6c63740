"""
Direction inference for imported rows.

Bank exports rarely say outright whether money came in or went out.
The strategy is pluggable so deployments can swap the keyword heuristic
for one that suits their banks and locale.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from decimal import Decimal

from ..config import DEFAULT_INCOME_KEYWORDS
from ..schemas import Direction


class DirectionStrategy(ABC):
    """Decides whether an imported row is income or expense."""

    @abstractmethod
    def infer(self, description: str, signed_amount: Decimal) -> Direction:
        """
        Infer the direction of a row.

        Args:
            description: Raw description text from the row
            signed_amount: Amount as it appeared in the file, sign included

        Returns:
            Direction.IN or Direction.OUT
        """
        pass


class KeywordDirectionStrategy(DirectionStrategy):
    """
    Income when the description contains an income keyword, otherwise expense.

    The amount sign is ignored: many exports show every row as positive.
    """

    def __init__(self, keywords: Iterable[str] = DEFAULT_INCOME_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def infer(self, description: str, signed_amount: Decimal) -> Direction:
        lower_desc = description.lower()
        if any(keyword in lower_desc for keyword in self.keywords):
            return Direction.IN
        return Direction.OUT
