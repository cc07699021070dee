"""
Network reachability package.
"""

from ai_resilience.network.reachability import (
    ManualReachability,
    ReachabilityObserver,
    TcpReachabilityProbe,
)

__all__ = ["ManualReachability", "ReachabilityObserver", "TcpReachabilityProbe"]
