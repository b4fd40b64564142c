"""Report artifacts for simulation results: JSON, CSV and Markdown"""
import csv
import io
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from quadrant_guard.harness import compare_simulations
from quadrant_guard.models.simulation import SimulationComparison, SimulationResult
from quadrant_guard.utils.json_encoder import DateTimeEncoder

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    'name',
    'location',
    'totalContributions',
    'fraudCount',
    'fraudRate',
    'accuracy',
    'precision',
    'recall',
    'f1Score',
    'falsePositiveRate',
    'falseNegativeRate',
    'processingTimeMs',
    'throughput',
]


def simulation_to_dict(result: SimulationResult) -> Dict[str, Any]:
    """Full record of one simulation, camelCase keys"""
    return {
        'config': result.config.model_dump(mode='json'),
        'contributions': [record.to_payload() for record in result.contributions],
        'detectionResults': [
            {
                'contributorId': record.contributor_id,
                'projectId': record.project_id,
                'actualLabel': record.is_labeled_fraud,
                **assessment.to_payload(),
            }
            for record, assessment in zip(result.contributions, result.assessments)
        ],
        'metrics': result.metrics.to_dict(),
        'attackBreakdown': result.attack_breakdown,
        'fundingBefore': {pid: breakdown.to_dict() for pid, breakdown in result.funding_before.items()},
        'fundingAfter': {pid: breakdown.to_dict() for pid, breakdown in result.funding_after.items()},
        'fundingChanges': [change.to_dict() for change in result.funding_changes],
        'fundingImpact': result.funding_impact.to_dict(),
        'processingTimeMs': result.processing_time_ms,
        'throughput': result.throughput,
        'timestamp': result.completed_at,
    }


def build_report(results: Mapping[str, SimulationResult]) -> Dict[str, Any]:
    """Structured report: every simulation plus the cross-simulation comparison"""
    comparison = compare_simulations(list(results.values()))
    return {
        'generatedAt': datetime.now(timezone.utc),
        'simulations': {key: simulation_to_dict(result) for key, result in results.items()},
        'comparison': comparison.to_dict(),
    }


def render_json(results: Mapping[str, SimulationResult]) -> str:
    return json.dumps(build_report(results), indent=2, ensure_ascii=False, cls=DateTimeEncoder)


def csv_row(result: SimulationResult) -> Dict[str, Any]:
    metrics = result.metrics
    return {
        'name': result.config.name,
        'location': result.config.location,
        'totalContributions': len(result.contributions),
        'fraudCount': result.fraud_count,
        'fraudRate': round(result.fraud_rate, 4),
        'accuracy': round(metrics.accuracy, 4),
        'precision': round(metrics.precision, 4),
        'recall': round(metrics.recall, 4),
        'f1Score': round(metrics.f1_score, 4),
        'falsePositiveRate': round(metrics.false_positive_rate, 4),
        'falseNegativeRate': round(metrics.false_negative_rate, 4),
        'processingTimeMs': round(result.processing_time_ms, 3),
        'throughput': round(result.throughput),
    }


def render_csv(results: Mapping[str, SimulationResult]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator='\n')
    writer.writeheader()
    for result in results.values():
        writer.writerow(csv_row(result))
    return buffer.getvalue()


def _pct(value: float) -> str:
    return f"{value * 100:.2f}%"


def render_markdown(results: Mapping[str, SimulationResult],
                    comparison: Optional[SimulationComparison] = None) -> str:
    comparison = comparison or compare_simulations(list(results.values()))
    overall = comparison.overall
    lines = [
        '# LATAM Quadratic Funding Simulation Results',
        '',
        f"**Generated:** {datetime.now(timezone.utc).isoformat()}",
        '',
        '---',
        '',
        '## Executive Summary',
        '',
        f"- **Total Contributions Analyzed:** {overall.total_contributions}",
        f"- **Total Fraud:** {overall.total_fraud} ({_pct(overall.fraud_rate)})",
        f"- **Total Flagged:** {overall.total_detected}",
        f"- **Average Detection Accuracy:** {_pct(overall.average_accuracy)}",
        f"- **Average F1 Score:** {_pct(overall.average_f1_score)}",
        '',
        '## Individual Simulation Results',
        '',
    ]

    for result in results.values():
        metrics = result.metrics
        lines += [
            f"### {result.config.name}",
            '',
            f"**Location:** {result.config.location}  ",
            f"**Matching Pool:** ${result.config.matching_pool:,.0f}",
            '',
            '#### Detection Metrics',
            '',
            '| Metric | Value |',
            '|--------|-------|',
            f"| Accuracy | {_pct(metrics.accuracy)} |",
            f"| Precision | {_pct(metrics.precision)} |",
            f"| Recall | {_pct(metrics.recall)} |",
            f"| F1 Score | {_pct(metrics.f1_score)} |",
            f"| False Positive Rate | {_pct(metrics.false_positive_rate)} |",
            f"| False Negative Rate | {_pct(metrics.false_negative_rate)} |",
            '',
            '#### Confusion Matrix',
            '',
            '| | Predicted Fraud | Predicted Legitimate |',
            '|---|---|---|',
            f"| **Actual Fraud** | {metrics.true_positives} | {metrics.false_negatives} |",
            f"| **Actual Legitimate** | {metrics.false_positives} | {metrics.true_negatives} |",
            '',
            '#### Funding Fairness',
            '',
            f"Projects affected: {result.funding_impact.projects_affected}, "
            f"redistributed: ${result.funding_impact.redistribution:,.2f} "
            f"({_pct(result.funding_impact.fairness_improvement)})",
            '',
        ]
        if result.top_gainers:
            lines.append('Top gainers (fraud removed):')
            lines += [
                f"- {change.project_id}: +${change.change:,.2f} ({change.change_percent:.2f}%)"
                for change in result.top_gainers
            ]
            lines.append('')
        if result.top_losers:
            lines.append('Top losers (fraud detected):')
            lines += [
                f"- {change.project_id}: -${abs(change.change):,.2f} ({change.change_percent:.2f}%)"
                for change in result.top_losers
            ]
            lines.append('')

    lines += [
        '## Performance Comparison',
        '',
        '| Simulation | Accuracy | Precision | Recall | F1 Score | Processing Time |',
        '|------------|----------|-----------|--------|----------|-----------------|',
    ]
    for result in results.values():
        metrics = result.metrics
        lines.append(
            f"| {result.config.name} | {_pct(metrics.accuracy)} | {_pct(metrics.precision)} | "
            f"{_pct(metrics.recall)} | {_pct(metrics.f1_score)} | "
            f"{result.processing_time_ms:.1f}ms ({result.throughput:.0f}/s) |"
        )
    lines.append('')
    return '\n'.join(lines)


def write_reports(results: Mapping[str, SimulationResult], output_dir: str,
                  prefix: str = 'latam-simulation') -> Dict[str, str]:
    """Write JSON, CSV and Markdown reports sharing one timestamped stem"""
    os.makedirs(output_dir, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H-%M-%S-%fZ')
    stem = os.path.join(output_dir, f"{prefix}-{stamp}")

    comparison = compare_simulations(list(results.values()))
    paths = {'json': f"{stem}.json", 'csv': f"{stem}.csv", 'markdown': f"{stem}.md"}
    contents = {
        'json': render_json(results),
        'csv': render_csv(results),
        'markdown': render_markdown(results, comparison),
    }
    for kind, path in paths.items():
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(contents[kind])
        logger.info(f"Wrote {kind} report to {path}")
    return paths
