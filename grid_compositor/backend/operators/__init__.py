"""
Rendering operators: each stage of one update cycle.

- canvas_transform: raster -> canvas affine per submap
- bounding_box: dry-run canvas sizing
- rasterize: source-over compositing in ascending id order
- classify: packed pixels -> {-1, 0, 100}
- denoise: optional in-place smoothing passes
"""
