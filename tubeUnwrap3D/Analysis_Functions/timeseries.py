import logging

import numpy as np


logger = logging.getLogger(__name__)


def robust_smooth_timeseries(signal, median_window=5, mean_window=7):
	r""" Outlier resistant smoothing of a 1d signal, a running median followed by a running mean. NaN values are linearly interpolated first.

	Parameters
	----------
	signal : (T,) array
		the signal
	median_window : int
		width of the running median. None or 1 to skip
	mean_window : int
		width of the running mean. None or 1 to skip

	Returns
	-------
	signal_smooth : (T,) array
		the smoothed signal
	"""
	from scipy.ndimage import median_filter, uniform_filter1d

	signal = np.array(signal, dtype=np.float64).ravel()
	valid = np.isfinite(signal)
	if not np.any(valid):
		return signal
	if not np.all(valid):
		tt = np.arange(len(signal))
		signal[~valid] = np.interp(tt[~valid], tt[valid], signal[valid])

	if median_window is not None and median_window > 1:
		signal = median_filter(signal, size=int(median_window), mode='nearest')
	if mean_window is not None and mean_window > 1:
		signal = uniform_filter1d(signal, size=int(mean_window), mode='nearest')

	return signal


def writhe_timeseries(curves, times=None,
					  framelen=17,
					  polyorder=2,
					  median_window=5,
					  mean_window=7,
					  stationary_policy='clamp',
					  n_samples=100,
					  stationary_tol=1e-8,
					  show_progress=False):
	r""" Polar writhe of a sequence of centerlines, one per timepoint, and its rate of change.

	Each centerline is Savitzky-Golay smoothed before its writhe is computed. The rate dWr/dt is the gradient of the robustly smoothed writhe, see :func:`robust_smooth_timeseries`.

	Parameters
	----------
	curves : list of (N_t,3) arrays
		the centerline of every timepoint
	times : (T,) array
		the time of every timepoint. If None, timepoints are spaced by 1
	framelen : int
		window of the centerline smoothing, see :func:`tubeUnwrap3D.Geometry.geometry.smooth_curve_savgol`
	polyorder : int
		order of the centerline smoothing
	median_window : int
		running median width applied to Wr(t)
	mean_window : int
		running mean width applied to Wr(t)
	stationary_policy : str
		see :func:`tubeUnwrap3D.Geometry.writhe.polar_writhe`
	n_samples : int
		see :func:`tubeUnwrap3D.Geometry.writhe.polar_writhe`
	stationary_tol : scalar
		see :func:`tubeUnwrap3D.Geometry.writhe.polar_writhe`
	show_progress : bool
		if True, show a progress bar over timepoints

	Returns
	-------
	wr : (T,) array
		polar writhe of every timepoint
	dwr_dt : (T,) array
		rate of change of the smoothed writhe
	results : list of :class:`tubeUnwrap3D.Geometry.writhe.WritheResult`
		the full writhe decomposition of every timepoint

	"""
	from tqdm import tqdm
	from ..Geometry import geometry, writhe

	n_t = len(curves)
	if times is None:
		times = np.arange(n_t)
	times = np.array(times, dtype=np.float64).ravel()
	if len(times) != n_t:
		raise ValueError('got %d times for %d curves' %(len(times), n_t))

	results = []
	iterator = tqdm(curves, desc='writhe') if show_progress else curves
	for curve in iterator:
		curve_smooth = geometry.smooth_curve_savgol(curve, framelen=framelen, polyorder=polyorder)
		res = writhe.polar_writhe(curve_smooth,
								  stationary_policy=stationary_policy,
								  n_samples=n_samples,
								  stationary_tol=stationary_tol)
		results.append(res)

	wr = np.array([res.wr for res in results], dtype=np.float64)
	if n_t > 1:
		dwr_dt = np.gradient(robust_smooth_timeseries(wr, median_window=median_window, mean_window=mean_window), times)
	else:
		dwr_dt = np.zeros(n_t)

	logger.info('computed polar writhe of %d timepoints', n_t)

	return wr, dwr_dt, results
