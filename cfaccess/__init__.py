"""Cloudflare Access IP Updater.

Small unattended service that keeps a Cloudflare Access Group include rule
pointed at the host's current public IP address:
 - public IP discovery through a fallback chain of lookup services
 - stateless reconciliation against the Access Group on a cron schedule
 - best-effort notifications through URL-addressed transports
 - liveness/readiness endpoints for container supervisors
"""
from __future__ import annotations

__version__ = "0.1.0"
