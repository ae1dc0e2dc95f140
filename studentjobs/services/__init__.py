"""
Services - business rules on top of MongoDB collections.
"""
