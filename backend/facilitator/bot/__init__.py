"""Chat platform adapter: commands, embeds and the Discord client."""
