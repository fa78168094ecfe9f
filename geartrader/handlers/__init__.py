"""Routers in dispatch order.

The menu router goes first so /start, /menu and /cancel win over any flow
that is in progress.  Flow input handlers skip slash commands, so every
other command also reaches its own handler and leaves the flow.
"""

from . import browse, listings, menu, mylistings, wizard

routers = [menu.router, wizard.router, mylistings.router, browse.router, listings.router]
