"""
                        Services Module

Business logic behind the HTTP endpoints.

Services:
    - catalog: restaurant and menu queries
    - checkout: cart pricing and hosted payment session creation
    - reconciler: payment webhook -> order status
    - invoice: itemized invoices rebuilt from order and catalog
    - orders: order listing and owner status edits
    - payment: Stripe / mock hosted-checkout gateways
"""
