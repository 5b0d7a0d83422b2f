from src.au_common.enums import RejectReason, SaleStatus


def check_not_sold(status: SaleStatus) -> RejectReason | None:
    """Sold products accept no further bids."""
    if status is SaleStatus.SOLD:
        return RejectReason.PRODUCT_SOLD
    return None
