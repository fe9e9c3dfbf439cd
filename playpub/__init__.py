"""Release publisher for Android App Bundles on Google Play."""

__version__ = "0.3.0"
