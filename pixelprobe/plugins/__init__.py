# Analysis plugins. Classes whose name ends with "Plugin" are picked up by
# pixelprobe.toolkit.load_plugins().
