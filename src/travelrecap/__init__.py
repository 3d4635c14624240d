"""Travel Recap - turn a year of tagged travel photos into a playable story."""

__version__ = "1.0.0"
