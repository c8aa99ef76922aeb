# --- ARAGON VOTING (aragon-apps/voting) ---
VOTING_ABI = [
    {
        "inputs": [{"name": "_voteId", "type": "uint256"}],
        "name": "getVote",
        "outputs": [
            {"name": "open", "type": "bool"},
            {"name": "executed", "type": "bool"},
            {"name": "startDate", "type": "uint64"},
            {"name": "snapshotBlock", "type": "uint64"},
            {"name": "supportRequired", "type": "uint64"},
            {"name": "minAcceptQuorum", "type": "uint64"},
            {"name": "yea", "type": "uint256"},
            {"name": "nay", "type": "uint256"},
            {"name": "votingPower", "type": "uint256"},
            {"name": "script", "type": "bytes"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "votesLength",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "PCT_BASE",
        "outputs": [{"name": "", "type": "uint64"}],
        "stateMutability": "view",
        "type": "function"
    }
]
