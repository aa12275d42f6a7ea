"""
Subscription lifecycle - customer subscriptions, their addons and billing
periods, and the state machine that moves them between statuses.
"""
