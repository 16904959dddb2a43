# Import every model so relationship() targets resolve and Base.metadata is complete
from app.models import user, post, social  # noqa: F401
