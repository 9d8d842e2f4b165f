import intervaltree


class OverlapIndex:
    """Static interval index over placed read spans.

    Built once from the spans reads have before gap projection. A span
    [begin_pos, end_pos) contains a query position pos when
    begin_pos <= pos <= end_pos: both edges are reported so that callers
    can tell leading- and trailing-edge hits apart.
    """

    def __init__(self, spans):
        """Args:
            spans: iterable of (begin_pos, end_pos, read_id)
        """
        self.tree = intervaltree.IntervalTree()
        for begin_pos, end_pos, read_id in spans:
            if end_pos < begin_pos:
                raise ValueError(
                    f'Span end {end_pos} precedes begin {begin_pos} for read {read_id}'
                )
            self.tree.addi(begin_pos, end_pos + 1, read_id)

    @classmethod
    def from_placed_reads(cls, placed_reads):
        return cls(
            (read.begin_pos, read.end_pos, read.read_id)
            for read in placed_reads
        )

    def __len__(self):
        return len(self.tree)

    def query(self, pos0):
        """Returns read ids whose span contains pos0, sorted."""
        return sorted(intv.data for intv in self.tree.at(pos0))

    def query_many(self, pos0s):
        return {pos0: self.query(pos0) for pos0 in pos0s}
