"""AQI engine: breakpoint tables, category scale and risk interpretation."""
