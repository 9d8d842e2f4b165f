import bisect
import itertools


class RefGapLedger:
    """Required gap-column width for each window-relative reference
    position: the maximum insertion width any read reports there.
    Positions with zero width are never stored.
    """

    def __init__(self):
        self.widths = dict()

    def __repr__(self):
        return f'<RefGapLedger> {len(self.widths)} positions, total width {self.total_width}'

    def __len__(self):
        return len(self.widths)

    def __contains__(self, pos0):
        return pos0 in self.widths

    def __getitem__(self, pos0):
        return self.widths[pos0]

    def add(self, pos0, width):
        if width < 0:
            raise ValueError(f'Insertion width must not be negative: {width}')
        if width == 0:
            return
        self.widths[pos0] = max(self.widths.get(pos0, 0), width)

    def update(self, insertion_table):
        for pos0, width in insertion_table.items():
            self.add(pos0, width)

    @property
    def total_width(self):
        return sum(self.widths.values())

    def iter_descending(self):
        return iter(sorted(self.widths.items(), reverse=True))

    def iter_ascending(self):
        return iter(sorted(self.widths.items()))

    def to_dict(self):
        return dict(self.iter_ascending())


class ReadInsertionTable:
    """Insertion widths one read itself carries, keyed by window-relative
    reference position (the position of the reference base on the right
    side of the inserted bases).
    """

    def __init__(self, read_id):
        self.read_id = read_id
        self.widths = dict()
        self._cumsum_cache = None

    def __repr__(self):
        return f'<ReadInsertionTable> read_id={self.read_id}, widths={self.to_dict()}'

    def __len__(self):
        return len(self.widths)

    def add(self, pos0, width):
        if width < 0:
            raise ValueError(f'Insertion width must not be negative: {width}')
        if width == 0:
            return
        # adjacent insertion operations at one position add up
        self.widths[pos0] = self.widths.get(pos0, 0) + width
        self._cumsum_cache = None

    def items(self):
        return sorted(self.widths.items())

    def to_dict(self):
        return dict(self.items())

    def width_at(self, pos0):
        return self.widths.get(pos0, 0)

    def cumulative_width(self, pos0):
        """Sum of own insertion widths at positions <= pos0"""
        if self._cumsum_cache is None:
            positions = sorted(self.widths)
            cumsums = list(itertools.accumulate(self.widths[x] for x in positions))
            self._cumsum_cache = (positions, cumsums)

        positions, cumsums = self._cumsum_cache
        idx = bisect.bisect_right(positions, pos0) - 1
        if idx < 0:
            return 0
        else:
            return cumsums[idx]
