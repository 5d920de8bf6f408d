"""
Fleet health and consistency monitor for validator nodes.

One monitoring pass polls every configured validator over JSON-RPC,
classifies each node against peer/sync thresholds, checks block-height
spread across the fleet, probes the faucet service and records alerts.
"""

__version__ = "0.1.0"
