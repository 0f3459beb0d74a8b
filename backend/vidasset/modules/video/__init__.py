"""Video module: records, path layout, rename and delete of video assets."""
