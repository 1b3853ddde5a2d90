"""RivetBot - a Discord bot sharing one command tree across chat prefixes and application commands."""

VERSION = "0.4.0"
