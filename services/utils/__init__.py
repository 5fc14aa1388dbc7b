from .cache import TTLCache
from .locks import ClanLocks
from .validators import sanitize_tag

__all__ = ['TTLCache', 'ClanLocks', 'sanitize_tag']
