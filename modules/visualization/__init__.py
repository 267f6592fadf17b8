"""Frame composition and HUD."""
