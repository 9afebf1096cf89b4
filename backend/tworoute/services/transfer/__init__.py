"""Transfer composer: primary + backup routes between two points.

Modules:
    config      Centralized thresholds, weights and multipliers
    geo         Haversine distance and speed-based estimates
    models      Requests, segments, routes, analyses
    segments    Segment builders and route aggregation
    strategies  Six candidate generators and the per-strategy boundary
    dedup       Collapses near-identical candidates
    scoring     Multi-factor scorer (sequential blend by default)
    selection   Primary pick and strategically distinct backup
    enhancer    Instructions, contingency plan, refined time estimate
    analyzer    Advantages, risk mitigation, when-to-use guidance
    composer    TransferComposer, wires the above together

Pipeline:
    RouteCache.get_pair → generate_candidates → deduplicate_routes → rank_routes
    → select_pair → enhance_route ×2 → analyze_routes → RouteCache.set_pair
"""
