"""
Notifications Domain

Real-time delivery of marketplace events to customers, maids and admins:
- registry.py   live push channels partitioned by role-class
- channel.py    auth handshake and ping/pong over the push channel
- delivery.py   NotificationRouter: push to live channels, persist for offline replay
- health.py     idle-connection eviction loop
- events.py     one builder per business event
- producers.py  scheduled reminders and alerts
- router.py     /api/notifications HTTP API and the /ws channel endpoint

Submodules are imported directly; this package re-exports nothing.
"""
