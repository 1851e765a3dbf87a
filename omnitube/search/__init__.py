"""Search orchestration: debounced input, recents and results."""

from omnitube.search.debounce import Debounce
from omnitube.search.model import FavoriteItem, SearchModel, SearchState
from omnitube.search.recents import RecentsModel

__all__ = ["Debounce", "FavoriteItem", "RecentsModel", "SearchModel", "SearchState"]
