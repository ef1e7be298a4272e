"""
GPS Monitoring Replay
Backend Application Package

Track-replay engine for live field-agent monitoring: turns raw location
pings into a scrubbable animated route with kinematics, battery telemetry,
visited outlets/invoices and an optional road-snapped overlay.
"""

__version__ = "1.0.0"
__author__ = "Field Operations Back-Office"
