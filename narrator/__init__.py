"""
Narrator - article to audio conversion service.
"""
