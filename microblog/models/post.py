from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Post(BaseModel):
    id: str
    text: str
    author_id: str
    created_at: datetime
    # set only when the text is edited
    last_modified_at: Optional[datetime] = None
