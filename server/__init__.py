"""HTTP adapter for the Carioca engine."""
