"""Video export: job bookkeeping and slideshow assembly."""
