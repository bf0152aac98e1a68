"""Optional tool server exposing the lab simulator over MCP."""
