"""
LRU cache for Mizan Memory Engine embeddings
Copyright 2025 Jurden Bruce
"""

from collections import OrderedDict


class LRUCache(OrderedDict):
    """Bounded LRU cache with hit/miss counters"""
    def __init__(self, maxsize=1000):
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        super().__init__()

    def __setitem__(self, key, value):
        if self.maxsize <= 0:
            return
        if key in self:
            self.move_to_end(key)
        super().__setitem__(key, value)
        while len(self) > self.maxsize:
            del self[next(iter(self))]

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.move_to_end(key)
        return value

    def lookup(self, key):
        """Return the cached value or None, counting the hit or miss"""
        if key in self:
            self.hits += 1
            return self[key]
        self.misses += 1
        return None
