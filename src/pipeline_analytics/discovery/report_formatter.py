"""Plain-text rendering of a pipeline report for logs, emails and CLIs."""

from __future__ import annotations

from pipeline_analytics.discovery.report_builder import PipelineReport


def _days(value: float | None) -> str:
    return f"{value:.1f} days" if value is not None else "n/a"


def format_pipeline_report(report: PipelineReport) -> str:
    """Combine the report sections into a formatted multi-section string."""
    s = report.summary
    f = report.forecast
    r = report.risk
    flow = report.deal_flow
    h = report.health

    sections: list[str] = []
    sections.append("PIPELINE ANALYSIS REPORT")
    sections.append("=" * 60)

    sections.append("\n".join([
        "",
        "SUMMARY",
        "-" * 40,
        f"  Total Deals:     {s.total_deals:>15}",
        f"  Open / On Hold:  {s.open_deals:>7} / {s.on_hold_deals:<7}",
        f"  Won / Lost:      {s.won_deals:>7} / {s.lost_deals:<7}",
        f"  Pipeline Value:  {s.pipeline_value:>15,.2f}",
        f"  Weighted Value:  {s.weighted_pipeline_value:>15,.2f}",
        f"  Win Rate:        {s.win_rate * 100:>14.1f}%",
        f"  Avg Deal Size:   {s.average_deal_size:>15,.2f}",
        f"  Closed Cycle:    {_days(s.closed_deal_cycle_average_days):>15}",
        f"  Open Age:        {_days(s.open_deal_age_average_days):>15}",
    ]))

    sections.append("\n".join([
        "",
        "FORECAST",
        "-" * 40,
        f"  Best Case:       {f.best_case:>15,.2f}",
        f"  Base Case:       {f.base_case:>15,.2f}",
        f"  Worst Case:      {f.worst_case:>15,.2f}",
        f"  Coverage Ratio:  {f.coverage_ratio:>14.2f}x",
    ]))

    lines = [
        "",
        "RISK",
        "-" * 40,
        f"  Stalled Deals:   {r.stalled_deal_count:>15}",
        f"  Stalled Value:   {r.stalled_pipeline_value:>15,.2f}",
        f"  Overdue F/Ups:   {r.overdue_follow_up_count:>15}",
        f"  Overdue Deals:   {report.velocity.overdue_deals:>15}",
    ]
    for deal in r.stalled_deals:
        lines.append(f"    {str(deal.get('title') or deal.get('id')):<28} {deal['value']:>12,.2f}")
    sections.append("\n".join(lines))

    sections.append("\n".join([
        "",
        f"DEAL FLOW ({flow.lookback_days}d)",
        "-" * 40,
        f"  New Deals:       {flow.new_deals.count:>7} (prev {flow.new_deals.previous_count})",
        f"  Wins:            {flow.wins.count:>7} (prev {flow.wins.previous_count})",
        f"  Net New Value:   {flow.net_new_pipeline_value:>15,.2f}",
        f"  Momentum Index:  {flow.momentum_index:>15.3f}",
        f"  Activity Rate:   {flow.activity_rate:>9.3f}/day (prev {flow.previous_activity_rate:.3f})",
    ]))

    lines = [
        "",
        "HEALTH",
        "-" * 40,
        f"  Score:           {h.score:>12}/100",
        f"  Status:          {h.status:>15}",
    ]
    for d in h.drivers:
        lines.append(f"    {d.metric:<20} {d.contribution:>6.1f} / {d.weight:.0f}")
    sections.append("\n".join(lines))

    if report.recommendations:
        lines = ["", "RECOMMENDATIONS", "-" * 40]
        for i, rec in enumerate(report.recommendations, 1):
            lines.append(f"  {i}. [{rec.priority.upper()}] {rec.title}")
        sections.append("\n".join(lines))

    if report.experience is not None:
        sections.append("\n" + report.experience.narrative)

    sections.append("\n" + "=" * 60)
    return "\n".join(sections)
