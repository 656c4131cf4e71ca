from agrotrace.services.blockchain import BlockchainRecorder, DisconnectedRecorder


def get_chain_recorder() -> BlockchainRecorder:
    """
    Blockchain recorder injected into batch routes. Deployments with a wallet
    client override this dependency; without one batches are kept locally only.
    """
    return DisconnectedRecorder()
