"""
The MODEL layer contains the data containers and persistence.
It has NO knowledge of the sampling algorithm internals.
It deals with loading inputs and storing selection results.
"""
