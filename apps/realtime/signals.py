# apps/realtime/signals.py
from django.dispatch import Signal

# Sent with keyword arguments ``event`` (str) and ``payload`` (dict).
# Transport adapters (websocket gateways, SSE feeds) connect here.
realtime_event = Signal()
