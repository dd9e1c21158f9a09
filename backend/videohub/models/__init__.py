from videohub.models.user import User
from videohub.models.video import Video
from videohub.models.like import Like
from videohub.models.comment import Comment
from videohub.models.subscription import Subscription
from videohub.models.watch_history import WatchHistoryEntry

__all__ = ["User", "Video", "Like", "Comment", "Subscription", "WatchHistoryEntry"]
