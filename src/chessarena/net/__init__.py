"""Two-party play: wire protocol, transports, room server and peer channel."""

from chessarena.net.loopback import LoopbackHub, LoopbackTransport
from chessarena.net.peer_sync import MatchInfo, PeerSyncChannel, RoomHandle
from chessarena.net.server import RoomServer, random_room_code
from chessarena.net.transport import Transport
from chessarena.net.verify import RevalidateWithRules, SyncVerifier, TrustMover

__all__ = [
    "LoopbackHub",
    "LoopbackTransport",
    "MatchInfo",
    "PeerSyncChannel",
    "RevalidateWithRules",
    "RoomHandle",
    "RoomServer",
    "SyncVerifier",
    "Transport",
    "TrustMover",
    "random_room_code",
]
