"""
Head Monitor.

Follows the chain head and delivers each new block exactly once, in
increasing level order, to a single sink.

Quick Start:
    from head_monitor import HeadMonitor, QueueSink

    monitor = HeadMonitor(context)
    await monitor.run(QueueSink(render_block, maxsize=100), cancel_event)
"""

from head_monitor.filters import HeadFilter
from head_monitor.pipeline import HeadMonitor, MonitorConfig, MonitorStats, monitor
from head_monitor.sinks import BlockSink, CallbackSink, EncoderSink, QueueSink


__all__ = [
    "HeadFilter",
    "HeadMonitor",
    "MonitorConfig",
    "MonitorStats",
    "monitor",
    "BlockSink",
    "CallbackSink",
    "EncoderSink",
    "QueueSink",
]
