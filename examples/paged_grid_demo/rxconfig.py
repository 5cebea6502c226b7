"""Reflex configuration for the paged grid demo app."""

import reflex as rx

config = rx.Config(
    app_name="paged_grid_demo",
    plugins=[rx.plugins.SitemapPlugin()],
)
