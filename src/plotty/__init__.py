"""Plot claiming for community Minecraft servers."""
