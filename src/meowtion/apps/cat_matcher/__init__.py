"""Cat matcher application: roster matching and breed identification."""
