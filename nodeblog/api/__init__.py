"""HTTP surface: routes, auth and output records."""
