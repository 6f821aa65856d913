from src.client.api import BoardAPI, BoardAPIError
from src.client.store import BoardStateStore, EntityKind, MergeResult
from src.client.drag import DragController, DragState, DragStateError, DropTarget
from src.client.event_bus import EventBusClient, SubscriptionToken, WebSocketTransport
from src.client.adapter import BoardEventAdapter
from src.client.progress import ProgressTracker
