from embit.networks import NETWORKS as EMBIT_NETWORKS

# silent payment prefix used when encoding
SP_HRPS = {
    "main": "sp",
    "test": "tsp",
    "signet": "tsp",
    "regtest": "tsp",
}

NETWORKS = {name: dict(EMBIT_NETWORKS[name], sp=hrp) for name, hrp in SP_HRPS.items()}

# silent payment prefixes accepted when decoding, "sprt" is never produced
SP_PREFIXES = {
    "sp": "main",
    "tsp": "test",
    "sprt": "regtest",
}


def get_network(name):
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError("Unknown network: %s" % name)
