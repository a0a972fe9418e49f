"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending pool.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. collateral_conservation.py - Tokens held by the pool match recorded positions
2. loan_bounds.py - Loans never exceed their limits and repaid never exceeds debt
3. seizure_bounds.py - Liquidation never seizes more than is deposited
4. raising_sums.py - Raised collateral equals the sum of funder contributions
5. operation_atomicity.py - Failed operations leave no trace

These tests use hypothesis for property-based testing.
"""
