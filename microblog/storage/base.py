from abc import ABC, abstractmethod
from typing import List, Tuple

from ..models import Post

MAX_PAGE_SIZE = 255


class Manager(ABC):
    """
    Storage contract used by the HTTP layer.
    Every backend (in-memory, MongoDB, Redis cache-aside) implements it
    independently; the concrete one is chosen at startup.
    """

    @abstractmethod
    async def add_post(self, author_id: str, text: str) -> Post:
        """Create a post and return it with its assigned id and created_at"""

    @abstractmethod
    async def get_post(self, post_id: str) -> Post:
        """Fetch one post. Raises NotFoundError if it does not exist"""

    @abstractmethod
    async def get_posts_in_page(self, author_id: str, token: str, size: int) -> Tuple[List[Post], str]:
        """
        Return up to `size` posts of the author, newest first, and the token
        of the next page. An empty token means there are no more pages.
        """

    @abstractmethod
    async def modify_post(self, post_id: str, text: str) -> Post:
        """Replace the text of a post and stamp last_modified_at"""

    @abstractmethod
    async def is_ready(self) -> bool:
        """Whether the backend can serve requests right now"""
