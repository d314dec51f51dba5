"""bulk-spine command line interface."""
