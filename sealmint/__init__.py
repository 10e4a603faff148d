"""
sealmint

A fixed-supply issuance sale with sealed-bid price discovery:
- Commit-reveal appraisals backed by a refundable deposit
- Online price statistics and a std-dev eligibility band
- Restricted mint at the discovered clearing price
- Decaying public sale for the remaining supply
"""
