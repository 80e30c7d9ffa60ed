"""HTTP surface for serving stores and overlays."""
