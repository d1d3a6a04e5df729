"""
Domain models and repositories for birdlearn.
"""
