import socket
from pathlib import Path

from grading.managers.scoring_manager import ScoreAggregator
from grading.models.results import GradingRecord, Submission, TestResult


def make_record(submission_id="s1", points=(5, 15, 0), max_points=(5, 15, 10), server_started=True, errors=()):
    tests = [
        TestResult(name=f"case {i}", passed=p == m, points=p, max_points=m)
        for i, (p, m) in enumerate(zip(points, max_points))
    ]
    score = ScoreAggregator().compute(tests)
    return GradingRecord(
        submission=Submission(id=submission_id, name=f"Student {submission_id}", source_dir=Path("/tmp") / submission_id),
        server_started=server_started,
        tests=tests,
        errors=list(errors),
        total_score=score.total_score,
        max_score=score.max_score,
        percentage=score.percentage,
        grade=score.grade,
    )


def ipv6_available() -> bool:
    if not socket.has_ipv6:
        return False
    try:
        with socket.socket(socket.AF_INET6, socket.SOCK_STREAM) as s:
            s.bind(("::1", 0))
    except OSError:
        return False
    return True


def can_listen(port: int) -> bool:
    """Open real listeners on the IPv4 and dual-stack IPv6 wildcards, as Node does."""
    families = [(socket.AF_INET, ("", port))]
    if ipv6_available():
        families.append((socket.AF_INET6, ("::", port)))
    for family, address in families:
        with socket.socket(family, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if family == socket.AF_INET6:
                s.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            try:
                s.bind(address)
                s.listen()
            except OSError:
                return False
    return True
