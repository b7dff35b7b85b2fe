"""Photo portfolio gallery: masonry grid, lazy loading and a modal viewer."""
