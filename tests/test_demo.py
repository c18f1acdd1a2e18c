"""
Tests for the ownership_demo.py driver, run as a subprocess.
"""

from ownership.limit_tracker import URGENT_WARNING


class TestDemos:
    def test_all_demos(self, run_demo, tmp_path):
        result = run_demo()
        assert result.returncode == 0, result.stderr
        assert "count after `c` goes out of scope = 2" in result.stdout
        assert "pre-order: [5, 3]" in result.stdout
        assert (tmp_path / "ownership.log").read_text().strip() == URGENT_WARNING

    def test_rc_counts(self, run_demo):
        result = run_demo("rc")
        assert result.returncode == 0, result.stderr
        lines = result.stdout.splitlines()
        assert "count after creating `a` = 1" in lines
        assert "count after creating `b` = 2" in lines
        assert "count after creating `c` = 3" in lines

    def test_tree_frees_everything(self, run_demo):
        result = run_demo("tree", "--heap")
        assert result.returncode == 0, result.stderr
        assert "leaf parent = 5" in result.stdout
        assert "dropping node 5" in result.stdout
        assert "dropping node 3" in result.stdout
        assert "Total blocks: 0" in result.stdout

    def test_cycle_leaks(self, run_demo):
        result = run_demo("cycle", "--heap")
        assert result.returncode == 0, result.stderr
        assert "after releasing a and b: a strong = 1, b strong = 1" in result.stdout
        assert "dropping node" not in result.stdout
        assert "Total blocks: 2" in result.stdout

    def test_drop_order(self, run_demo):
        result = run_demo("drop")
        out = result.stdout
        assert out.index("CustomSmartPointers created.") \
            < out.index("`other stuff`") < out.index("`my stuff`")

    def test_stats(self, run_demo):
        result = run_demo("drop", "--stats")
        assert "[RC:STATS]" in result.stdout
        assert "payload_drops: 2" in result.stdout


class TestFailures:
    def test_borrow_violation_panics(self, run_demo):
        result = run_demo("refcell", "--violate")
        assert result.returncode == 101
        assert "panicked: already borrowed: BorrowMutError" in result.stderr

    def test_invalid_trace_level(self, run_demo):
        result = run_demo("rc", "--trace", "loud")
        assert result.returncode == 2
        assert "Configuration error" in result.stderr

    def test_missing_config(self, run_demo):
        result = run_demo("rc", "--config", "absent.toml")
        assert result.returncode == 2

    def test_trace_goes_to_stderr(self, run_demo):
        result = run_demo("drop", "--trace", "lifecycle")
        assert result.returncode == 0
        assert "[RC:DROP]" in result.stderr
        assert "[RC:DROP]" not in result.stdout

    def test_config_file(self, run_demo, tmp_path):
        (tmp_path / "ownership.toml").write_text('[trace]\nstream = "stdout"\nlevel = "ops"\n')
        result = run_demo("drop")
        assert result.returncode == 0
        assert "[RC:RELEASE]" in result.stdout
