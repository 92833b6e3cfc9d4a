"""Report records and the pure helpers behind the project tracker and discovery scan."""
