"""Valkyrie: Discord bot for managing Terraria and Minecraft game servers over SSH."""

__version__ = "1.0.0"
