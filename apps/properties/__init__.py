"""Properties app package.

This app holds the parking catalog: properties with their rates and the
parking slots inside them, plus read-only availability and occupancy
endpoints.
"""
