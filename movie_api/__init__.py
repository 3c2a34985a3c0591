"""Movie catalog API — movies and genres with a cache-aside Redis layer."""
