"""SelfHost Monitor - uptime checks and alerting for self-hosted services."""
