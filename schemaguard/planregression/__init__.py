"""Plan-only EXPLAIN capture, config loading and before/after query-plan regression analysis."""