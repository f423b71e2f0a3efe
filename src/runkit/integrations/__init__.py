"""External-world integrations behind ABCs, with real and fake implementations."""
