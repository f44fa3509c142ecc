"""Balance change notifications.

Public API:
- ChangeNotifier: subscribe/unsubscribe listeners, synchronous publish.
- BalanceChanged: event delivered to listeners.
"""

from .bus import ChangeNotifier  # re-export
from .schema import BalanceChanged  # re-export
