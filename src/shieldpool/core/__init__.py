"""
Coin model and wire payloads for shieldpool.
"""

from .coin import (
    AddressSecret,
    Coin,
    CoinPrivateInfo,
    CoinPublicInfo,
    ProcessedReceiver,
    ReceivingAddress,
    make_coin,
    new_address,
    prepare_receiver,
    random_field_element,
    receive_coin,
)
from .payload import (
    MINT_SIZE,
    PAYLOAD_VERSION,
    RECEIVER_SIZE,
    RECLAIM_SIZE,
    SENDER_SIZE,
    TRANSFER_SIZE,
    MintData,
    PrivateTransferData,
    ReceiverData,
    ReclaimData,
    SenderData,
    SenderMetadata,
    generate_mint_payload,
    generate_private_transfer_payload,
    generate_reclaim_payload,
)

__all__ = [
    # Coins
    "Coin",
    "CoinPublicInfo",
    "CoinPrivateInfo",
    "ReceivingAddress",
    "AddressSecret",
    "ProcessedReceiver",
    "make_coin",
    "new_address",
    "prepare_receiver",
    "receive_coin",
    "random_field_element",
    # Payloads
    "PAYLOAD_VERSION",
    "MINT_SIZE",
    "SENDER_SIZE",
    "RECEIVER_SIZE",
    "TRANSFER_SIZE",
    "RECLAIM_SIZE",
    "MintData",
    "SenderData",
    "ReceiverData",
    "PrivateTransferData",
    "ReclaimData",
    "SenderMetadata",
    "generate_mint_payload",
    "generate_private_transfer_payload",
    "generate_reclaim_payload",
]
