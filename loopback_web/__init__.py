"""Flask control surface for loopback simulators."""
