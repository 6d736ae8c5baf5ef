"""PocketNext -- scaffold Next.js + PocketBase projects from a starter template."""

__version__ = "0.4.0"
