"""
End-to-end runs that fork real children through the public API.
"""

import os
import signal

import pytest

from pipepool import (
    CHUNK_SIZE,
    EXEC_FAILURE_STATUS,
    ExitStatus,
    PoolConfig,
    ProcessPool,
    TerminationCause,
    run_batch,
    run_single,
)
from pipepool.application.scheduler import Scheduler
from pipepool.shared.metrics import MetricsCollector

EXITED_OK = ExitStatus(TerminationCause.EXITED, 0)

# Reads the first byte only, then writes a block far larger than a pipe buffer
READ_ONE_WRITE_MANY = (
    "import os, sys\n"
    "os.read(0, 1)\n"
    "sys.stdout.buffer.write(b'z' * (1 << 20))\n"
)

# Emits a large block before consuming any input, then echoes the input
WRITE_FIRST_THEN_ECHO = (
    "import sys\n"
    "sys.stdout.buffer.write(b'z' * (1 << 20))\n"
    "sys.stdout.flush()\n"
    "sys.stdout.buffer.write(sys.stdin.buffer.read())\n"
)

# Sleeps for the number of seconds given on the first line, then echoes everything
SLEEP_THEN_ECHO = (
    "import sys, time\n"
    "data = sys.stdin.buffer.read()\n"
    "time.sleep(float(data.split()[0]))\n"
    "sys.stdout.buffer.write(data)\n"
)


class TestByteExactEcho:

    @pytest.mark.parametrize('size', [0, 1, CHUNK_SIZE - 1, CHUNK_SIZE, CHUNK_SIZE + 1, 65536, 65537, 3 * 1024 * 1024])
    def test_cat_returns_input(self, size):
        payload = os.urandom(size)
        status, out, err = run_single(payload, 'cat')

        assert status == EXITED_OK
        assert out == payload
        assert err == b''

    def test_mixed_sizes_in_one_batch(self):
        inputs = [os.urandom(n) for n in (0, 5, 100000, 2 * 1024 * 1024 + 3, 8192)]
        statuses, stdouts, stderrs = run_batch(inputs, 3, 'cat')

        assert statuses == [EXITED_OK] * len(inputs)
        assert stdouts == inputs
        assert stderrs == [b''] * len(inputs)


class TestOrdering:

    @pytest.mark.parametrize('max_procs', [1, 2, 5])
    def test_results_follow_input_order(self, py, max_procs):
        # Earlier inputs sleep longer, so completion order is reversed
        delays = ['0.4', '0.3', '0.2', '0.1', '0.0']
        inputs = [f"{d} item-{i}\n".encode() for i, d in enumerate(delays)]

        statuses, stdouts, _ = run_batch(inputs, max_procs, *py(SLEEP_THEN_ECHO))

        assert statuses == [EXITED_OK] * 5
        assert stdouts == inputs

    def test_str_payloads_are_utf8(self):
        statuses, stdouts, _ = run_batch(['héllo', 'wörld'], 2, 'cat')
        assert stdouts == ['héllo'.encode('utf-8'), 'wörld'.encode('utf-8')]


class TestCompleteness:

    def test_empty_batch(self):
        result = run_batch([], 4, 'cat')
        assert result.statuses == [] and result.stdouts == [] and result.stderrs == []

    @pytest.mark.parametrize('n,max_procs', [(1, 1), (7, 3), (3, 10)])
    def test_one_result_per_input(self, n, max_procs):
        inputs = [str(i).encode() for i in range(n)]
        statuses, stdouts, stderrs = run_batch(inputs, max_procs, 'cat')

        assert len(statuses) == len(stdouts) == len(stderrs) == n
        assert stdouts == inputs


class TestConcurrencyBound:

    @pytest.mark.parametrize('max_procs', [1, 2, 4])
    def test_live_children_never_exceed_limit(self, py, max_procs):
        metrics = MetricsCollector()
        inputs = [b'0.05 x'] * 9

        Scheduler(max_procs, metrics=metrics).run(inputs, *py(SLEEP_THEN_ECHO))

        assert metrics.peak('live_handles') == max_procs
        assert all(1 <= v <= max_procs for v in metrics.get_metric('live_handles'))
        assert metrics.get_counter('spawned') == metrics.get_counter('reaped') == 9


class TestDeadlockFreedom:

    @pytest.mark.parametrize('max_procs', [1, 3])
    def test_child_reading_one_byte_and_writing_a_lot(self, py, max_procs):
        inputs = [b'q' * (1 << 20)] * 3

        statuses, stdouts, _ = run_batch(inputs, max_procs, *py(READ_ONE_WRITE_MANY))

        assert statuses == [EXITED_OK] * 3
        assert stdouts == [b'z' * (1 << 20)] * 3

    @pytest.mark.parametrize('max_procs', [1, 3])
    def test_child_writing_before_reading(self, py, max_procs):
        inputs = [os.urandom(1 << 20) for _ in range(3)]

        statuses, stdouts, _ = run_batch(inputs, max_procs, *py(WRITE_FIRST_THEN_ECHO))

        assert statuses == [EXITED_OK] * 3
        assert stdouts == [b'z' * (1 << 20) + data for data in inputs]

    def test_child_ignoring_stdin(self):
        statuses, stdouts, _ = run_batch([b'ignored' * 100000], 1, 'true')
        assert statuses == [EXITED_OK]
        assert stdouts == [b'']


class TestExitStatuses:

    def test_nonzero_exit_and_stderr(self):
        status, out, err = run_single(b'data', 'sh', '-c', 'cat; echo oops >&2; exit 3')

        assert status == ExitStatus(TerminationCause.EXITED, 3)
        assert out == b'data'
        assert err == b'oops\n'

    def test_signaled_child(self):
        status, _, _ = run_single(b'', 'sh', '-c', 'kill -TERM $$')
        assert status == ExitStatus(TerminationCause.SIGNALED, int(signal.SIGTERM))

    def test_exec_failure_is_per_item(self):
        statuses, stdouts, stderrs = run_batch([b'a', b'b'], 2, '/nonexistent/pipepool-test-binary')

        assert statuses == [ExitStatus(TerminationCause.EXITED, EXEC_FAILURE_STATUS)] * 2
        assert stdouts == [b'', b'']
        assert all(b'cannot execute' in err for err in stderrs)

    def test_failures_do_not_disturb_neighbours(self):
        inputs = [b'0\n', b'1\n', b'0\n']
        statuses, stdouts, _ = run_batch(inputs, 3, 'sh', '-c', 'read n; echo got $n; exit $n')

        assert [s.code for s in statuses] == [0, 1, 0]
        assert stdouts == [b'got 0\n', b'got 1\n', b'got 0\n']


def test_no_descriptor_leak(fd_counter, py):
    before = fd_counter()

    run_batch([os.urandom(200000) for _ in range(6)], 3, 'cat')
    run_batch([b'x'] * 4, 2, *py(READ_ONE_WRITE_MANY))
    run_batch([b'x'], 1, '/nonexistent/pipepool-test-binary')

    assert fd_counter() == before


def test_tee_side_effect_file(tmp_path):
    out_file = tmp_path / 'out.txt'
    small = b'a' * 65536
    big = b'a' * 65537

    statuses, stdouts, stderrs = run_batch([small, big], 1, 'tee', str(out_file))

    assert statuses == [EXITED_OK, EXITED_OK]
    assert stdouts == [small, big]
    assert stderrs == [b'', b'']
    # one-wide pool runs them in order; the second tee truncates and rewrites
    assert out_file.read_bytes() == big


@pytest.mark.parametrize('size', [65536, 65537])
def test_tee_single(tmp_path, size):
    out_file = tmp_path / f'{size}.txt'
    payload = b'a' * size

    status, out, _ = run_single(payload, 'tee', str(out_file))

    assert status == EXITED_OK
    assert out == payload
    assert out_file.read_bytes() == payload


class TestProcessPool:

    def test_uses_configured_max_procs(self, py):
        metrics = MetricsCollector()
        pool = ProcessPool(PoolConfig(max_procs=2), metrics=metrics)

        result = pool.run_batch([b'0.05 a', b'0.05 b', b'0.05 c'], *py(SLEEP_THEN_ECHO))

        assert result.all_succeeded
        assert result.stdouts == [b'0.05 a', b'0.05 b', b'0.05 c']
        assert metrics.peak('live_handles') == 2

    def test_run_single(self):
        pool = ProcessPool(PoolConfig(max_procs=4))
        item = pool.run_single(b'solo', 'cat')

        assert item.status.success
        assert item.stdout == b'solo'
        assert item.stderr == b''
