"""
World Heritage Explorer data pipeline.

Imports the bundled UNESCO list into a local database and fills in missing
images, galleries and coordinates from Wikidata, Wikimedia Commons,
Wikipedia and a geocoder.
"""

__version__ = "1.0.0"
