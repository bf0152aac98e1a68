"""Optional generative-text integrations for the lab simulator."""
