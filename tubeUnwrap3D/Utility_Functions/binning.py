import numpy as np


def bin_data_2d_grid(uvz, uminmax, vminmax, nU, nV, return_lists=False):
    r""" Bin scattered (u,v,z) samples onto a regular nU x nV grid and average z in each cell.

    Grid cell centers run from umin to umax (vmin to vmax). Each sample goes to the nearest cell center, samples outside the extents go to the edge cells.

    Parameters
    ----------
    uvz : (N,3) array
        the samples, columns u, v and the value z
    uminmax : 2-tuple
        (umin, umax), the u coordinates of the first and last cell centers
    vminmax : 2-tuple
        (vmin, vmax), the v coordinates of the first and last cell centers
    nU : int
        number of cells along u
    nV : int
        number of cells along v
    return_lists : bool
        if True, additionally return the list of z values in every cell

    Returns
    -------
    zmeans : (nU,nV) array
        mean z of each cell, NaN for empty cells
    counts : (nU,nV) int array
        number of samples in each cell
    uidx : (N,) int array
        u cell index of each sample
    vidx : (N,) int array
        v cell index of each sample
    zs : (nU,nV) object array
        if return_lists=True, the array of z values in each cell

    """
    uvz = np.array(uvz, dtype=np.float64)
    if uvz.ndim != 2 or uvz.shape[1] < 3:
        raise ValueError('uvz must be an (N,3) array, got shape ' + str(uvz.shape))
    nU = int(nU)
    nV = int(nV)
    if nU < 1 or nV < 1:
        raise ValueError('grid must have at least one cell along each axis')

    def _bin_index(x, xminmax, n):
        xmin, xmax = float(xminmax[0]), float(xminmax[1])
        if n == 1:
            return np.zeros(len(x), dtype=np.int64)
        if xmax == xmin:
            raise ValueError('grid extent (%g, %g) is degenerate' %(xmin, xmax))
        # round half away from zero
        idx = np.floor((x - xmin) * (n-1) / (xmax - xmin) + .5)
        return np.clip(idx, 0, n-1).astype(np.int64)

    uidx = _bin_index(uvz[:,0], uminmax, nU)
    vidx = _bin_index(uvz[:,1], vminmax, nV)

    counts = np.zeros((nU, nV), dtype=np.int64)
    sums = np.zeros((nU, nV), dtype=np.float64)
    np.add.at(counts, (uidx, vidx), 1)
    np.add.at(sums, (uidx, vidx), uvz[:,2])

    zmeans = np.full((nU, nV), np.nan)
    filled = counts > 0
    zmeans[filled] = sums[filled] / counts[filled]

    if return_lists:
        zs = np.empty((nU, nV), dtype=object)
        order = np.lexsort((vidx, uidx))
        cell = uidx[order] * nV + vidx[order]
        splits = np.flatnonzero(np.diff(cell)) + 1
        for ii in range(nU):
            for jj in range(nV):
                zs[ii,jj] = np.zeros(0)
        for group in np.split(order, splits):
            if len(group) > 0:
                zs[uidx[group[0]], vidx[group[0]]] = uvz[group,2]
        return zmeans, counts, uidx, vidx, zs

    return zmeans, counts, uidx, vidx
