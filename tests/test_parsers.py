"""
Tests for command builders, process filters and output parsers.
"""

import pytest

from collectors.commands import SYSTEM_STATS_COMMAND, build_ps_command, build_system_stats_command
from collectors.filters import matches_filters
from collectors.models import MonitoredProcess, ProcessFilterSpec
from collectors.parsers import (
    ParseError,
    decode_process_table,
    parse_process_output,
    parse_system_stats_output,
)
from validation.validators import ValidationError


def make_process(name='', user='', group='', cmdline=None):
    return MonitoredProcess(
        pid=1, user=user, group=group, name=name,
        cmdline=name if cmdline is None else cmdline,
        cpu_percent=0.0, mem_percent=0.0, status='S', start_time='',
    )


class TestCommandBuilder:
    """Tests for the remote command templates."""

    def test_ps_command_shape(self):
        """Test the exact process listing command."""
        assert build_ps_command('deploy') == (
            'ps -u deploy -o pid,user,%cpu,%mem,stat,lstart,args --no-headers'
        )

    @pytest.mark.parametrize('user', ['', 'root; rm -rf /', '$(id)', 'a b', 'x' * 33])
    def test_ps_command_revalidates_user(self, user):
        """Test that the builder refuses unvalidated users."""
        with pytest.raises(ValidationError):
            build_ps_command(user)

    def test_system_stats_command_is_constant(self):
        """Test that the probe is a fixed literal."""
        assert build_system_stats_command() == SYSTEM_STATS_COMMAND
        assert build_system_stats_command() is build_system_stats_command()
        assert 'free -m' in SYSTEM_STATS_COMMAND
        assert 'df -h /' in SYSTEM_STATS_COMMAND
        assert 'top -bn1' in SYSTEM_STATS_COMMAND


class TestMatchesFilters:
    """Tests for the shared filter engine."""

    def test_empty_filter_matches_nothing(self):
        """Test fail-closed behaviour of an empty spec."""
        empty = ProcessFilterSpec()
        assert empty.is_empty()
        for proc in [make_process('sshd', 'root', 'root'), make_process('', '', ''), make_process('nginx')]:
            assert matches_filters(proc, empty) is False

    def test_keyword_substring_match(self):
        """Test that {'sshd'} matches '/usr/sbin/sshd -D' but not 'nginx'."""
        filters = ProcessFilterSpec(keywords={'sshd'})
        assert matches_filters(make_process('/usr/sbin/sshd -D'), filters)
        assert not matches_filters(make_process('nginx'), filters)

    def test_keyword_is_case_sensitive(self):
        filters = ProcessFilterSpec(keywords={'SSHD'})
        assert not matches_filters(make_process('/usr/sbin/sshd -D'), filters)

    def test_keyword_matches_cmdline(self):
        """Test that keywords also match the full command line."""
        filters = ProcessFilterSpec(keywords={'app.py'})
        assert matches_filters(make_process('python3', cmdline='/usr/bin/python3 app.py'), filters)

    def test_user_match(self):
        filters = ProcessFilterSpec(users={'postgres'})
        assert matches_filters(make_process('postmaster', user='postgres'), filters)
        assert not matches_filters(make_process('postmaster', user='root'), filters)

    def test_group_match(self):
        filters = ProcessFilterSpec(groups={'docker'})
        assert matches_filters(make_process('dockerd', group='docker'), filters)
        assert not matches_filters(make_process('dockerd', group=''), filters)

    def test_any_category_is_sufficient(self):
        """Test logical OR across categories."""
        filters = ProcessFilterSpec(keywords={'redis'}, users={'postgres'}, groups={'docker'})
        assert matches_filters(make_process('nginx', user='postgres'), filters)
        assert matches_filters(make_process('nginx', group='docker'), filters)
        assert matches_filters(make_process('redis-server'), filters)
        assert not matches_filters(make_process('nginx', user='www', group='www'), filters)


class TestProcessTableDecoder:
    """Tests for ps output decoding."""

    def test_end_to_end_sshd_line(self):
        """Test the documented sshd line decodes to one record."""
        line = '1234 root 2.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D'
        result = parse_process_output(line, ProcessFilterSpec(keywords=['sshd']))

        assert len(result) == 1
        proc = result[0]
        assert proc.pid == 1234
        assert proc.user == 'root'
        assert proc.cpu_percent == 2.5
        assert proc.mem_percent == 1.1
        assert proc.status == 'Ss'
        assert proc.name == '/usr/sbin/sshd -D'
        assert proc.cmdline == '/usr/sbin/sshd -D'
        assert proc.start_time == 'Mon Jan 1 00:00:00 2024'
        assert proc.group == ''

    def test_filters_applied(self, sample_ps_output):
        """Test that only matching processes are returned, in input order."""
        filters = ProcessFilterSpec(keywords=['sshd', 'python3'])
        result = parse_process_output(sample_ps_output, filters)
        assert [p.pid for p in result] == [1234, 3456]
        assert result[1].cmdline == '/usr/bin/python3 app.py --port 8000'

    def test_user_filter(self, sample_ps_output):
        result = parse_process_output(sample_ps_output, ProcessFilterSpec(users=['www-data']))
        assert [p.pid for p in result] == [2345]
        assert result[0].name == 'nginx: worker process'

    def test_empty_filter_returns_nothing(self, sample_ps_output):
        assert parse_process_output(sample_ps_output, ProcessFilterSpec()) == []

    def test_decoding_is_idempotent(self, sample_ps_output):
        """Test that decoding the same text twice yields identical records."""
        filters = ProcessFilterSpec(keywords=['/'])
        first = parse_process_output(sample_ps_output, filters)
        second = parse_process_output(sample_ps_output, filters)
        assert first == second
        assert len(first) == 2

    def test_short_lines_are_dropped(self):
        """Test that lines with fewer than 8 fields never appear in output."""
        output = (
            '1 root 0.0 0.0 Ss Mon Jan\n'
            '2 root 0.0\n'
            '1234 root 2.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D\n'
        )
        processes, skipped = decode_process_table(output, ProcessFilterSpec(users=['root']))
        assert [p.pid for p in processes] == [1234]
        assert skipped == 2

    @pytest.mark.parametrize('line', [
        'abc root 2.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '1234 root x.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '1234 root 2.5 mem Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '12.5 root 2.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '1_234 root 2.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '\u0661\u0662\u0663 root 2.5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '1234 root 2_5 1.1 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
        '1234 root 2.5 1e999 Ss Mon Jan 1 00:00:00 2024 /usr/sbin/sshd -D',
    ])
    def test_numeric_failures_drop_line(self, line):
        """Test that a bad pid, cpu or mem drops the line instead of defaulting."""
        processes, skipped = decode_process_table(line, ProcessFilterSpec(keywords=['sshd']))
        assert processes == []
        assert skipped == 1

    def test_malformed_line_does_not_abort_parse(self, sample_ps_output):
        """Test skip-and-continue on a noisy line in the middle."""
        noisy = sample_ps_output.replace(' 2345 ', ' garbage ')
        result = parse_process_output(noisy, ProcessFilterSpec(keywords=['sshd', 'python3', 'nginx']))
        assert [p.pid for p in result] == [1234, 3456]

    def test_blank_output(self):
        processes, skipped = decode_process_table('\n\n   \n', ProcessFilterSpec(keywords=['x']))
        assert processes == []
        assert skipped == 0


class TestSystemStatsDecoder:
    """Tests for the system stats probe decoder."""

    def test_end_to_end_probe_output(self):
        """Test the documented probe output decodes in order."""
        stats = parse_system_stats_output('12.3 2048 8192 50.5 100.0')
        assert stats.cpu_percent == 12.3
        assert stats.mem_used_mb == 2048
        assert stats.mem_total_mb == 8192
        assert stats.disk_used_gb == 50.5
        assert stats.disk_total_gb == 100.0
        assert stats.mem_percent == 25.0
        assert stats.disk_percent == 50.5

    def test_multiline_probe_output(self, sample_stats_output):
        """Test the real probe layout: cpu on its own line, the rest after."""
        stats = parse_system_stats_output(sample_stats_output)
        assert stats.cpu_percent == 12.3
        assert stats.disk_total_gb == 100.0

    def test_four_tokens_fail(self):
        with pytest.raises(ParseError):
            parse_system_stats_output('12.3 2048 8192 50.5')

    def test_empty_output_fails(self):
        with pytest.raises(ParseError):
            parse_system_stats_output('')

    @pytest.mark.parametrize('output', [
        'x 2048 8192 50.5 100.0',
        '12.3 2048 8192 50.5 100G',
        '12.3 nan 8192 50.5 100.0',
        '12.3 2048 inf 50.5 100.0',
        '12.3 2_048 8192 50.5 100.0',
        '12.3 2048 8192 50.5 \u0661\u0660\u0660',
    ])
    def test_any_bad_token_fails_whole_record(self, output):
        """Test that no partial stats are returned."""
        with pytest.raises(ParseError):
            parse_system_stats_output(output)

    def test_to_dict_includes_derived_fields(self):
        data = parse_system_stats_output('1 1 4 1 4').to_dict()
        assert data['mem_percent'] == 25.0
        assert data['disk_percent'] == 25.0
        assert isinstance(data['timestamp'], str)
