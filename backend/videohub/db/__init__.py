from videohub.db.session import get_db, init_db, async_session_maker
from videohub.db.base import Base
