"""MegaInvest cookie-consent backend and client synchronization."""
