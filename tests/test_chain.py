"""Tests for PAF -> chain conversion and shared-axis match events."""

import gzip
import logging

import pytest

from paf2chain.catalog import build_catalogs
from paf2chain.chain import (
    CHAIN_SCORE,
    Chain,
    ChainIdCounter,
    UngappedMatch,
    default_output_path,
    for_each_ungapped_match,
    iter_chains,
    iter_ungapped_matches,
    paf_to_chain,
    record_global_start,
    record_to_chains,
)
from paf2chain.paf_io import PafRecord


def _rec(line):
    return PafRecord.from_line(line)


def _one_chain(line):
    chains = record_to_chains(_rec(line), ChainIdCounter())
    assert len(chains) == 1
    return chains[0]


# ---------------------------------------------------------------------------
# record_to_chains
# ---------------------------------------------------------------------------


class TestRecordToChains:
    def test_gap_triple_and_final_block(self):
        chain = _one_chain('q1\t100\t10\t90\t+\tt1\t200\t20\t100\tcg:Z:10M5D70M')
        assert chain.target_start == 20
        assert chain.target_end == 100
        assert chain.query_start == 10
        assert chain.query_end == 90
        assert chain.blocks == [(10, 5, 0)]
        assert chain.final_size == 70
        assert chain.chain_id == 0
        assert chain.score == CHAIN_SCORE

    def test_reverse_strand_coordinates(self):
        chain = _one_chain('q\t100\t10\t40\t-\tt\t500\t0\t30\tcg:Z:30M')
        assert chain.query_strand == '-'
        assert chain.query_start == 60
        assert chain.query_end == 90

    def test_reverse_strand_with_trimmed_insertions(self):
        chain = _one_chain('q\t100\t10\t43\t-\tt\t500\t0\t28\tcg:Z:2I28M3I')
        assert chain.query_start == 100 - (43 - 2)
        assert chain.query_end == 100 - (10 + 3)
        assert chain.query_end - chain.query_start == chain.query_span

    def test_forward_strand_trimming(self):
        chain = _one_chain(
            'q\t50\t0\t19\t+\tt\t500\t100\t125\tcg:Z:5D3I10M2I4M6D'
        )
        assert (chain.target_start, chain.target_end) == (105, 119)
        assert (chain.query_start, chain.query_end) == (3, 19)
        assert chain.blocks == [(10, 0, 2)]
        assert chain.final_size == 4
        assert chain.target_end - chain.target_start == chain.target_span
        assert chain.query_end - chain.query_start == chain.query_span

    def test_synthesized_script_target_longer(self):
        chain = _one_chain('q\t100\t0\t50\t+\tt\t200\t0\t80')
        # 50M30D: the trailing deletion is trimmed off.
        assert chain.blocks == []
        assert chain.final_size == 50
        assert (chain.target_start, chain.target_end) == (0, 50)
        assert (chain.query_start, chain.query_end) == (0, 50)

    def test_synthesized_script_query_longer(self):
        chain = _one_chain('q\t100\t0\t80\t+\tt\t200\t10\t60')
        assert chain.final_size == 50
        assert (chain.query_start, chain.query_end) == (0, 50)
        assert (chain.target_start, chain.target_end) == (10, 60)

    def test_zero_length_span_emits_nothing(self):
        counter = ChainIdCounter()
        assert record_to_chains(_rec('q\t100\t10\t10\t+\tt\t200\t0\t5'), counter) == []
        assert counter.issued == 0

    def test_gap_only_script_emits_nothing(self):
        counter = ChainIdCounter()
        rec = _rec('q\t100\t0\t5\t+\tt\t200\t0\t4\tcg:Z:5I4D')
        assert record_to_chains(rec, counter) == []
        assert counter.issued == 0

    def test_multiple_cigar_tags_give_multiple_chains(self):
        rec = _rec('q\t100\t0\t30\t+\tt\t200\t0\t30\tcg:Z:30M\tcg:Z:10M2D18M')
        chains = record_to_chains(rec, ChainIdCounter(5))
        assert [c.chain_id for c in chains] == [5, 6]
        assert chains[1].blocks == [(10, 2, 0)]

    def test_malformed_cigar_raises(self):
        rec = _rec('q\t100\t0\t30\t+\tt\t200\t0\t30\tcg:Z:10M5')
        with pytest.raises(ValueError, match='bad CIGAR for q -> t'):
            record_to_chains(rec, ChainIdCounter())

    def test_zero_run_length_raises(self):
        rec = _rec('q\t100\t0\t30\t+\tt\t200\t0\t35\tcg:Z:0M5D30M')
        with pytest.raises(ValueError, match='bad CIGAR for q -> t'):
            record_to_chains(rec, ChainIdCounter())

    def test_span_mismatch_logged(self, caplog):
        # 10M5D70M covers 85 target bases but the record spans 80.
        rec = _rec('q1\t100\t10\t90\t+\tt1\t200\t20\t100\tcg:Z:10M5D70M')
        with caplog.at_level(logging.DEBUG, logger='paf2chain.chain'):
            record_to_chains(rec, ChainIdCounter())
        assert 'blocks cover 85/80 bases but the header spans 80/80' in caplog.text

    def test_consistent_spans_not_logged(self, caplog):
        rec = _rec('q1\t100\t10\t90\t+\tt1\t200\t20\t105\tcg:Z:10M5D70M')
        with caplog.at_level(logging.DEBUG, logger='paf2chain.chain'):
            record_to_chains(rec, ChainIdCounter())
        assert 'blocks cover' not in caplog.text


# ---------------------------------------------------------------------------
# Chain rendering
# ---------------------------------------------------------------------------


class TestChainText:
    def test_to_text(self):
        chain = _one_chain('q1\t100\t10\t90\t+\tt1\t200\t20\t100\tcg:Z:10M5D70M')
        assert chain.to_text() == (
            'chain\t255\tt1\t200\t+\t20\t100\tq1\t100\t+\t10\t90\t0\n'
            '10\t5\t0\n'
            '70\n'
            '\n'
        )

    def test_single_block_chain(self):
        chain = Chain(3, 't', 10, 0, 10, 'q', 10, '+', 0, 10, final_size=10)
        lines = chain.to_text().split('\n')
        assert lines[1:] == ['10', '', '']

    def test_block_list_starts_and_ends_with_ungapped(self):
        chain = _one_chain('q\t100\t0\t30\t+\tt\t200\t0\t33\tcg:Z:3D1I10M2D9M1D2I10M')
        body = chain.to_text().rstrip('\n').split('\n')[1:]
        assert len(body[-1].split('\t')) == 1
        assert all(len(line.split('\t')) == 3 for line in body[:-1])
        assert int(body[0].split('\t')[0]) > 0


# ---------------------------------------------------------------------------
# Streams and files
# ---------------------------------------------------------------------------


class TestIterChains:
    def test_ids_contiguous_across_skipped_records(self):
        records = [
            _rec('q\t100\t0\t30\t+\tt\t200\t0\t30\tcg:Z:30M'),
            _rec('q\t100\t0\t5\t+\tt\t200\t0\t0\tcg:Z:5I'),
            _rec('q\t100\t30\t60\t+\tt\t200\t40\t70\tcg:Z:30M'),
        ]
        assert [c.chain_id for c in iter_chains(records)] == [0, 1]

    def test_shared_counter_continues(self):
        counter = ChainIdCounter()
        rec = _rec('q\t100\t0\t30\t+\tt\t200\t0\t30\tcg:Z:30M')
        list(iter_chains([rec], counter))
        assert [c.chain_id for c in iter_chains([rec], counter)] == [1]


class TestPafToChain:
    def test_default_output_path(self, paf_file, expected_chain):
        n = paf_to_chain(paf_file)
        out = default_output_path(paf_file)
        assert str(out) == paf_file + '.chain'
        assert n == 3
        assert out.read_text() == expected_chain

    def test_gzip_input(self, gzip_paf_file, tmp_path, expected_chain):
        out = tmp_path / 'out.chain'
        paf_to_chain(gzip_paf_file, out)
        assert out.read_text() == expected_chain

    def test_stdout(self, paf_file, capsys, expected_chain):
        paf_to_chain(paf_file, '-')
        assert capsys.readouterr().out == expected_chain

    def test_idempotent(self, paf_file, tmp_path):
        first = tmp_path / 'a.chain'
        second = tmp_path / 'b.chain'
        paf_to_chain(paf_file, first)
        paf_to_chain(paf_file, second)
        assert first.read_bytes() == second.read_bytes()

    def test_logs_record_and_chain_counts(self, paf_file, tmp_path, caplog):
        with caplog.at_level(logging.INFO, logger='paf2chain.chain'):
            paf_to_chain(paf_file, tmp_path / 'out.chain')
        assert 'Read 3 record(s), wrote 3 chain(s)' in caplog.text

    def test_missing_input(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            paf_to_chain(tmp_path / 'missing.paf')
        assert not (tmp_path / 'missing.paf.chain').exists()

    def test_malformed_line_is_fatal(self, tmp_path):
        path = tmp_path / 'bad.paf.gz'
        with gzip.open(path, 'wt') as fh:
            fh.write('q\t100\t0\t30\t+\tt\t200\t0\t30\n')
            fh.write('q\t100\t0\t30\t?\tt\t200\t0\t30\n')
        with pytest.raises(ValueError, match=':2:'):
            paf_to_chain(path, tmp_path / 'bad.chain')


# ---------------------------------------------------------------------------
# Shared-axis ungapped matches
# ---------------------------------------------------------------------------


@pytest.fixture
def catalogs():
    """Queries a (300) and c (200); one 1000 bp target t1."""
    return build_catalogs(
        [
            'a\t300\t0\t10\t+\tt1\t1000\t0\t10',
            'c\t200\t0\t10\t+\tt1\t1000\t0\t10',
        ]
    )


class TestUngappedMatches:
    def test_global_start(self, catalogs):
        queries, targets = catalogs
        fwd = _rec('c\t200\t10\t40\t+\tt1\t1000\t100\t130')
        rev = _rec('c\t200\t10\t40\t-\tt1\t1000\t100\t130')
        assert record_global_start(fwd, queries, targets) == (100, 310)
        assert record_global_start(rev, queries, targets) == (100, 340)

    def test_forward_walk(self, catalogs):
        rec = _rec('c\t200\t0\t30\t+\tt1\t1000\t100\t135\tcg:Z:10M5D20M')
        assert list(iter_ungapped_matches(rec, *catalogs)) == [
            UngappedMatch(100, 300, 10, False),
            UngappedMatch(115, 310, 20, False),
        ]

    def test_reverse_walk(self, catalogs):
        rec = _rec('c\t200\t0\t30\t-\tt1\t1000\t100\t135\tcg:Z:10M5D20M')
        matches = list(iter_ungapped_matches(rec, *catalogs))
        assert matches == [
            UngappedMatch(100, 330, 10, True),
            UngappedMatch(115, 320, 20, True),
        ]
        assert matches[-1].query_end == 300
        assert matches[-1].target_end == 135

    def test_insertion_advances_query_only(self, catalogs):
        rec = _rec('a\t300\t0\t17\t+\tt1\t1000\t0\t15\tcg:Z:5M2I10M')
        starts = [(m.target_start, m.query_start) for m in iter_ungapped_matches(rec, *catalogs)]
        assert starts == [(0, 0), (5, 7)]

    def test_unknown_sequence_raises(self, catalogs):
        rec = _rec('zz\t200\t0\t30\t+\tt1\t1000\t0\t30')
        with pytest.raises(KeyError):
            list(iter_ungapped_matches(rec, *catalogs))

    def test_callback_form(self, catalogs):
        seen = []
        records = [
            _rec('a\t300\t0\t10\t+\tt1\t1000\t0\t10'),
            _rec('c\t200\t0\t30\t+\tt1\t1000\t100\t135\tcg:Z:10M5D20M'),
        ]
        n = for_each_ungapped_match(
            records, *catalogs, lambda rec, match: seen.append((rec.query_name, match.length))
        )
        assert n == 3
        assert seen == [('a', 10), ('c', 10), ('c', 20)]
